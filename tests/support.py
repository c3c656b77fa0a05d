"""Shared fixtures: a seeded in-memory store and a recording logger."""
import logging

from local2global.config.env import LoggingConfig
from local2global.store.memory import InMemoryStore, seed_taxonomy
from local2global.store.records import Child, Parent, ParentAttribute, Term
from local2global.utils.logger import SOURCE, RecordingHandler, ScopedLogger

CORR_ID = "l2g_test"


def add_term(store: InMemoryStore, taxonomy: str, term_id: int, name: str, slug: str) -> Term:
    term = Term(term_id, name, slug, taxonomy)
    store.terms[taxonomy][term_id] = term
    return term


def color_store(kind: str = "variable", children=None, attributes=None) -> InMemoryStore:
    """Parent 100 with a local "Cor" attribute; pa_cor holds azul (11) and vermelho (12)."""
    store = InMemoryStore()
    key = seed_taxonomy(store, "cor", "Cor")
    add_term(store, key, 11, "Azul", "azul")
    add_term(store, key, 12, "Vermelho", "vermelho")
    if attributes is None:
        attributes = [ParentAttribute("Cor", ["Azul", "Vermelho"], position=2, visible=True, variation=True)]
    store.add_parent(Parent(id=100, title="Camiseta", kind=kind, attributes=attributes))
    if children is None:
        children = [
            Child(201, 100, "Camiseta Azul", meta={"attribute_cor": "Azul"}),
            Child(202, 100, "Camiseta Vermelho", meta={"attribute_cor": "Vermelho"}),
        ]
    for child in children:
        store.add_child(child)
    return store


def color_mapping(**overrides):
    mapping = {
        "local_attr": "Cor",
        "local_label": "Cor",
        "target_tax": "pa_cor",
        "create_attribute": False,
        "terms": [
            {"local_value": "Azul", "term_slug": "azul"},
            {"local_value": "Vermelho", "term_slug": "vermelho"},
        ],
    }
    mapping.update(overrides)
    return mapping


def recording_logger(enabled: bool = True, debug: bool = False):
    """A ScopedLogger plus the handler capturing its records; detach with `release`."""
    logger = ScopedLogger(config=LoggingConfig(enabled=enabled, debug=debug))
    handler = RecordingHandler()
    logging.getLogger(SOURCE).addHandler(handler)
    return logger, handler


def release(handler: RecordingHandler) -> None:
    logging.getLogger(SOURCE).removeHandler(handler)
