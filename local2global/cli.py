import argparse
import json
import sys
from typing import List, Optional

from local2global.api.orchestrator import MigrationService, get_store
from local2global.discovery.service import suggest_mapping
from local2global.exports.reports import summary_md
from local2global.store.memory import InMemoryStore
from local2global.store.records import Child, Parent, ParentAttribute, optional_int
from local2global.utils.normalizer import local_meta_key


def _pairs(values: Optional[List[str]]) -> List[tuple]:
    """Split ``a:b`` arguments, skipping malformed ones."""
    out = []
    for raw in values or []:
        left, _, right = raw.partition(":")
        if left and right:
            out.append((left, right))
    return out


def _load(path: Optional[str]) -> InMemoryStore:
    if path:
        return InMemoryStore.from_json_path(path)
    return get_store()


def _emit(envelope: dict, summary: bool = False) -> int:
    print(json.dumps(envelope, indent=2, ensure_ascii=False))
    if summary and envelope.get("ok") and "updated_attrs" in envelope["result"]:
        print(summary_md(envelope["result"]))
    return 0 if envelope.get("ok") else 1


def _build_mapping(attrs, terms, create_terms: bool, create_attribute: bool) -> List[dict]:
    term_config = [
        {"local_value": value, "term_slug": slug, "create": create_terms}
        for value, slug in terms
    ]
    return [
        {
            "local_attr": local,
            "local_label": local,
            "target_tax": target,
            "target_label": local,
            "create_attribute": create_attribute,
            "terms": term_config,
        }
        for local, target in attrs
    ]


def cmd_map(args) -> int:
    attrs = _pairs(args.attr)
    if not attrs:
        print("At least one --attr local:pa_slug is required.", file=sys.stderr)
        return 2
    store = _load(args.store)
    service = MigrationService(store)
    mapping = _build_mapping(attrs, _pairs(args.term), args.create_missing, args.create_attribute)

    product_ids = sorted(store.parents) if args.product == "all" else [args.product]
    code = 0
    for pid in product_ids:
        env = service.map(pid, mapping, mode="dry-run" if args.dry_run else "apply")
        code = max(code, _emit(env, args.summary))
    if args.save and not args.dry_run:
        store.dump_json(args.save)
    return code


def cmd_variations_update(args) -> int:
    store = _load(args.store)
    env = MigrationService(store).resync_children(args.product, args.tax or None)
    code = _emit(env)
    if args.save:
        store.dump_json(args.save)
    return code


def cmd_suggest(args) -> int:
    store = _load(args.store)
    found = MigrationService(store).discover(args.product)
    mappings = [m.to_dict() for m in suggest_mapping(store, optional_int(args.product) or 0)]
    print(json.dumps({"discovery": found, "mapping": mappings}, indent=2, ensure_ascii=False))
    return 0


def cmd_simulate(args) -> int:
    """Create a variable test product with local attributes and migrate it."""
    attrs = _pairs(args.attr) or [("Cor", "pa_cor")]
    values = _pairs(args.val) or [("Azul", "azul"), ("Vermelho", "vermelho")]
    store = _load(args.store)
    mapping = _build_mapping(attrs, values, True, True)

    pid = store.new_id()
    store.add_parent(Parent(
        id=pid,
        title=f"Local2Global test product {pid}",
        kind="variable",
        attributes=[
            ParentAttribute(name=local, options=[v for v, _ in values], position=i, visible=True, variation=True)
            for i, (local, _) in enumerate(attrs)
        ],
    ))
    first = attrs[0][0]
    for value, _ in values[:max(1, args.variations)]:
        cid = store.new_id()
        store.add_child(Child(id=cid, parent_id=pid, title=f"Variation {value}", meta={local_meta_key(first): value}))
    print(f"Test product created: {pid}", file=sys.stderr)

    env = MigrationService(store).map(pid, mapping, mode="dry-run" if args.dry_run else "apply")
    code = _emit(env, summary=True)
    if args.save:
        store.dump_json(args.save)
    return code


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="local2global", description="Migrate local attributes to shared taxonomies")
    p.add_argument("--store", help="JSON store snapshot (defaults to L2G_STORE_PATH)")
    p.add_argument("--save", help="write the resulting store snapshot to this path")
    sub = p.add_subparsers(dest="command", required=True)

    m = sub.add_parser("map", help="dry-run or apply a mapping")
    m.add_argument("--product", required=True, help="product id or 'all'")
    m.add_argument("--attr", action="append", help="local:pa_slug (repeatable)")
    m.add_argument("--term", action="append", help="local value:term slug (repeatable)")
    m.add_argument("--create-missing", action="store_true", help="create missing terms")
    m.add_argument("--create-attribute", action="store_true", help="create the shared attribute if missing")
    m.add_argument("--dry-run", action="store_true")
    m.add_argument("--summary", action="store_true", help="also print a Markdown summary")
    m.set_defaults(func=cmd_map)

    v = sub.add_parser("variations-update", help="re-run child remapping for assigned taxonomies")
    v.add_argument("--product", required=True)
    v.add_argument("--tax", action="append", help="restrict to this taxonomy (repeatable)")
    v.set_defaults(func=cmd_variations_update)

    s = sub.add_parser("suggest", help="discover local attributes and suggest a mapping")
    s.add_argument("--product", required=True)
    s.set_defaults(func=cmd_suggest)

    sim = sub.add_parser("simulate", help="create a test product and migrate it")
    sim.add_argument("--attr", action="append", help="Local:pa_slug (default Cor:pa_cor)")
    sim.add_argument("--val", action="append", help="Value:slug (default Azul:azul, Vermelho:vermelho)")
    sim.add_argument("--variations", type=int, default=2)
    sim.add_argument("--dry-run", action="store_true")
    sim.set_defaults(func=cmd_simulate)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
