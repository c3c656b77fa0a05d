from __future__ import annotations
from typing import Any, Dict, List, Optional

from local2global.mapper.models import AttributeMapping, LocalAttribute, TargetAttribute, TermMapping
from local2global.matcher.core import Option, suggest_attribute, suggest_term
from local2global.store.base import TaxonomyStore
from local2global.store.records import Parent
from local2global.utils.normalizer import local_meta_key


def _used_in_children(store: TaxonomyStore, parent: Parent, name: str) -> bool:
    if not parent.is_variable:
        return False
    key = local_meta_key(name)
    for child_id in store.get_children(parent.id):
        if store.get_child(child_id) is not None and store.get_child_meta(child_id, key):
            return True
    return False


def _suggestion(store: TaxonomyStore, local: LocalAttribute) -> Dict[str, Any]:
    taxonomies = [Option(t.key, t.label) for t in store.list_taxonomies()]
    attr = suggest_attribute(local.label or local.name, taxonomies)
    terms: List[Dict[str, Any]] = []
    known = [] if attr.create else [Option(t.slug, t.name) for t in store.list_terms(attr.key, number=0)]
    for value in local.values:
        s = suggest_term(value, known)
        terms.append({"local_value": value, "term_slug": s.key, "create": s.create, "score": round(s.score, 2)})
    return {
        "target_tax": attr.key,
        "create_attribute": attr.create,
        "score": round(attr.score, 2),
        "reason": attr.reason,
        "terms": terms,
    }


def discover(store: TaxonomyStore, parent_id: int) -> Dict[str, Any]:
    """List the parent's free-text attributes; an unknown parent has none."""
    parent = store.get_parent(parent_id)
    if parent is None:
        return {"attributes": []}

    attributes = []
    for attribute in parent.canonical_attributes():
        if attribute.is_taxonomy:
            continue
        local = LocalAttribute(
            name=attribute.name,
            label=attribute.name,
            values=tuple(str(v).strip() for v in attribute.options),
            used_in_children=_used_in_children(store, parent, attribute.name),
        )
        attributes.append({
            "name": local.name,
            "label": local.label,
            "values": list(local.values),
            "in_variations": local.used_in_children,
            "suggestion": _suggestion(store, local),
        })
    return {"attributes": attributes}


def suggest_mapping(store: TaxonomyStore, parent_id: int, only: Optional[List[str]] = None) -> List[AttributeMapping]:
    """Turn the discovery into mappings ready for plan/apply."""
    mappings = []
    for item in discover(store, parent_id)["attributes"]:
        if only and item["name"] not in only:
            continue
        s = item["suggestion"]
        mappings.append(AttributeMapping(
            local=LocalAttribute(item["name"], item["label"], tuple(item["values"]), item["in_variations"]),
            target=TargetAttribute(s["target_tax"], item["label"], exists=not s["create_attribute"]),
            create_attribute_if_missing=s["create_attribute"],
            terms=tuple(TermMapping(t["local_value"], t["term_slug"], t["create"]) for t in s["terms"]),
        ))
    return mappings
