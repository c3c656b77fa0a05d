from __future__ import annotations
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from local2global.config.env import TAXONOMY_PREFIX
from local2global.errors import StoreError
from local2global.store.base import TaxonomyStore
from local2global.store.records import (
    Child,
    ObjectTerms,
    Parent,
    ParentAttribute,
    Taxonomy,
    Term,
)

# hook(store, child_id, key, value) fired after child meta writes
SaveHook = Callable[["InMemoryStore", int, str, Optional[str]], None]


class InMemoryStore(TaxonomyStore):
    """Dict-backed store with a per-child read cache and save hooks.

    Loadable from / dumpable to a JSON snapshot so the CLI can operate on a file.
    """

    def __init__(self) -> None:
        self.parents: Dict[int, Parent] = {}
        self.children: Dict[int, Child] = {}
        self.taxonomies: Dict[str, Taxonomy] = {}  # unprefixed slug -> taxonomy
        self.registered: set[str] = set()
        self.terms: Dict[str, Dict[int, Term]] = {}
        self.object_terms: Dict[tuple[int, str], List[int]] = {}
        self.assignments: List[ObjectTerms] = []
        self.saved: List[int] = []
        self.synced: List[int] = []
        self.transients_cleared: List[int] = []
        self.hooks: List[SaveHook] = []
        self._meta_cache: Dict[int, Dict[str, str]] = {}
        self._hooks_suspended = 0
        self._next_id = 1000

    # ---- helpers
    def new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _child(self, child_id: int) -> Child:
        child = self.children.get(child_id)
        if child is None:
            raise StoreError(f"Child {child_id} not found.")
        return child

    def _parent(self, parent_id: int) -> Parent:
        parent = self.parents.get(parent_id)
        if parent is None:
            raise StoreError(f"Parent {parent_id} not found.")
        return parent

    def _fire(self, child_id: int, key: str, value: Optional[str]) -> None:
        if self._hooks_suspended:
            return
        for hook in list(self.hooks):
            hook(self, child_id, key, value)

    def add_parent(self, parent: Parent) -> Parent:
        self.parents[parent.id] = parent
        self._next_id = max(self._next_id, parent.id)
        return parent

    def add_child(self, child: Child) -> Child:
        self.children[child.id] = child
        self._next_id = max(self._next_id, child.id)
        parent = self.parents.get(child.parent_id)
        if parent is not None and child.id not in parent.children:
            parent.children.append(child.id)
        return child

    # ---- parents
    def get_parent(self, parent_id: int) -> Optional[Parent]:
        return self.parents.get(parent_id)

    def set_parent_attributes(self, parent_id: int, attributes: List[ParentAttribute]) -> None:
        self._parent(parent_id).attributes = list(attributes)

    def save_parent(self, parent_id: int) -> None:
        self._parent(parent_id)
        self.saved.append(parent_id)

    def sync_variable(self, parent_id: int) -> None:
        parent = self._parent(parent_id)
        for cid in parent.children:
            child = self.children.get(cid)
            if child is not None:
                child.native = {k: v for k, v in child.meta.items() if k.startswith("attribute_")}
        self.synced.append(parent_id)

    def delete_parent_transients(self, parent_id: int) -> None:
        self.transients_cleared.append(parent_id)

    def set_object_terms(self, parent_id: int, term_ids: List[int], taxonomy: str, append: bool = False) -> None:
        self._parent(parent_id)
        if taxonomy not in self.registered:
            raise StoreError(f"Invalid taxonomy {taxonomy}.")
        known = self.terms.get(taxonomy, {})
        for tid in term_ids:
            if tid not in known:
                raise StoreError(f"Term {tid} does not belong to {taxonomy}.")
        current = self.object_terms.get((parent_id, taxonomy), []) if append else []
        merged = list(current) + [t for t in term_ids if t not in current]
        self.object_terms[(parent_id, taxonomy)] = merged
        self.assignments.append(ObjectTerms(parent_id, taxonomy, list(term_ids), append))

    def get_object_terms(self, parent_id: int, taxonomy: str) -> List[Term]:
        known = self.terms.get(taxonomy, {})
        return [known[t] for t in self.object_terms.get((parent_id, taxonomy), []) if t in known]

    # ---- shared attributes
    def attribute_id_by_name(self, slug: str) -> int:
        tax = self.taxonomies.get(slug)
        return tax.attribute_id if tax else 0

    def create_attribute(self, label: str, slug: str, order_by: str = "name", has_archives: bool = False) -> int:
        if not label.strip():
            raise StoreError("Attribute name is required.")
        if not slug or len(slug) > 28:
            raise StoreError(f"Invalid attribute slug {slug!r}.")
        if slug in self.taxonomies:
            raise StoreError(f"Slug {slug!r} is already in use (attribute already exists).")
        tax = Taxonomy(self.new_id(), slug, label, order_by, has_archives)
        self.taxonomies[slug] = tax
        return tax.attribute_id

    def taxonomy_exists(self, taxonomy: str) -> bool:
        return taxonomy in self.registered

    def register_taxonomy(self, taxonomy: str, label: str) -> None:
        self.registered.add(taxonomy)
        self.terms.setdefault(taxonomy, {})

    def list_taxonomies(self) -> List[Taxonomy]:
        return sorted(self.taxonomies.values(), key=lambda t: t.slug)

    # ---- terms
    def get_term(self, term_id: int, taxonomy: str) -> Optional[Term]:
        return self.terms.get(taxonomy, {}).get(term_id)

    def get_term_by_slug(self, slug: str, taxonomy: str) -> Optional[Term]:
        for term in self.terms.get(taxonomy, {}).values():
            if term.slug == slug:
                return term
        return None

    def insert_term(self, name: str, taxonomy: str, slug: str) -> Term:
        if taxonomy not in self.registered:
            raise StoreError(f"Invalid taxonomy {taxonomy}.")
        if not name.strip() or not slug:
            raise StoreError("A term name is required.")
        if self.get_term_by_slug(slug, taxonomy) is not None:
            raise StoreError(f"A term with the slug {slug!r} already exists in {taxonomy}.")
        term = Term(self.new_id(), name, slug, taxonomy)
        self.terms[taxonomy][term.term_id] = term
        return term

    def list_terms(self, taxonomy: str, search: str = "", number: int = 100) -> List[Term]:
        needle = search.lower()
        found = [
            t for t in self.terms.get(taxonomy, {}).values()
            if not needle or needle in t.name.lower() or needle in t.slug
        ]
        found.sort(key=lambda t: t.name.lower())
        return found[:number] if number > 0 else found

    # ---- children
    def get_children(self, parent_id: int) -> List[int]:
        parent = self.parents.get(parent_id)
        return list(parent.children) if parent else []

    def get_child(self, child_id: int) -> Optional[Child]:
        return self.children.get(child_id)

    def get_child_meta(self, child_id: int, key: str) -> str:
        if child_id not in self._meta_cache:
            self._meta_cache[child_id] = dict(self._child(child_id).meta)
        return self._meta_cache[child_id].get(key, "")

    def update_child_meta(self, child_id: int, key: str, value: str) -> None:
        self._child(child_id).meta[key] = value
        self._meta_cache.setdefault(child_id, dict(self._child(child_id).meta))[key] = value
        self._fire(child_id, key, value)

    def delete_child_meta(self, child_id: int, key: str) -> None:
        self._child(child_id).meta.pop(key, None)
        if child_id in self._meta_cache:
            self._meta_cache[child_id].pop(key, None)
        self._fire(child_id, key, None)

    def child_attributes(self, child_id: int) -> Dict[str, str]:
        return dict(self._child(child_id).attributes)

    def set_child_attributes(self, child_id: int, attributes: Dict[str, str]) -> None:
        self._child(child_id).attributes = dict(attributes)

    def native_child_attributes(self, child_id: int) -> Dict[str, str]:
        return dict(self._child(child_id).native)

    # ---- durable layer
    def read_meta_raw(self, child_id: int, key: str) -> Optional[str]:
        return self._child(child_id).meta.get(key)

    def upsert_meta_raw(self, child_id: int, key: str, value: str) -> None:
        self._child(child_id).meta[key] = value
        self._fire(child_id, key, value)

    def invalidate_child_caches(self, child_id: int) -> None:
        self._meta_cache.pop(child_id, None)

    @contextmanager
    def suspend_hooks(self) -> Iterator[None]:
        self._hooks_suspended += 1
        try:
            yield
        finally:
            self._hooks_suspended -= 1

    # ---- JSON snapshot
    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "InMemoryStore":
        store = InMemoryStore()
        for t in data.get("taxonomies", []):
            tax = Taxonomy(
                attribute_id=int(t["attribute_id"]),
                slug=t["slug"],
                label=t.get("label", t["slug"]),
                order_by=t.get("order_by", "name"),
                has_archives=bool(t.get("has_archives", False)),
            )
            store.taxonomies[tax.slug] = tax
            store.register_taxonomy(tax.key, tax.label)
            store._next_id = max(store._next_id, tax.attribute_id)
        for tax_key, terms in data.get("terms", {}).items():
            store.register_taxonomy(tax_key, tax_key)
            for t in terms:
                term = Term(int(t["term_id"]), t["name"], t["slug"], tax_key)
                store.terms[tax_key][term.term_id] = term
                store._next_id = max(store._next_id, term.term_id)
        for p in data.get("parents", []):
            store.add_parent(Parent(
                id=int(p["id"]),
                title=p.get("title", ""),
                kind=p.get("kind", "simple"),
                attributes=list(p.get("attributes", [])),
            ))
            for tax_key, ids in (p.get("object_terms") or {}).items():
                store.object_terms[(int(p["id"]), tax_key)] = [int(i) for i in ids]
        for c in data.get("children", []):
            meta = {k: str(v) for k, v in (c.get("meta") or {}).items()}
            store.add_child(Child(
                id=int(c["id"]),
                parent_id=int(c["parent_id"]),
                title=c.get("title", ""),
                meta=meta,
                attributes=dict(c.get("attributes") or {}),
                native=dict(c.get("native") or {k: v for k, v in meta.items() if k.startswith("attribute_")}),
            ))
        return store

    @staticmethod
    def from_json_path(path: str | Path) -> "InMemoryStore":
        return InMemoryStore.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))

    def to_dict(self) -> Dict[str, Any]:
        parents = []
        for p in self.parents.values():
            object_terms = {tax: ids for (pid, tax), ids in self.object_terms.items() if pid == p.id}
            parents.append({
                "id": p.id,
                "title": p.title,
                "kind": p.kind,
                "attributes": [a.to_dict() for a in p.canonical_attributes()],
                "object_terms": object_terms,
            })
        return {
            "taxonomies": [t.to_dict() for t in self.list_taxonomies()],
            "terms": {
                tax: [{"term_id": t.term_id, "name": t.name, "slug": t.slug} for t in terms.values()]
                for tax, terms in self.terms.items()
            },
            "parents": parents,
            "children": [
                {
                    "id": c.id,
                    "parent_id": c.parent_id,
                    "title": c.title,
                    "meta": c.meta,
                    "attributes": c.attributes,
                    "native": c.native,
                }
                for c in self.children.values()
            ],
        }

    def dump_json(self, path: str | Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")


def seed_taxonomy(store: InMemoryStore, slug: str, label: str, terms: Optional[Dict[str, str]] = None) -> str:
    """Create and register a shared attribute with `{slug: name}` terms; returns the taxonomy key."""
    store.create_attribute(label, slug)
    key = TAXONOMY_PREFIX + slug
    store.register_taxonomy(key, label)
    for term_slug, name in (terms or {}).items():
        store.insert_term(name, key, term_slug)
    return key
