"""Record/taxonomy store interface.

The engine never touches storage directly; everything goes through a
`TaxonomyStore`. Child meta has two paths:
- object-level (`get_child_meta`, `update_child_meta`, `delete_child_meta`):
  goes through the host's read cache and fires save hooks;
- raw (`read_meta_raw`, `upsert_meta_raw`): hits the durable layer only.
Raw writes leave cached reads stale until `invalidate_child_caches` runs.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from local2global.store.records import Child, Parent, ParentAttribute, Taxonomy, Term


class TaxonomyStore(ABC):
    # parents
    @abstractmethod
    def get_parent(self, parent_id: int) -> Optional[Parent]: ...

    @abstractmethod
    def set_parent_attributes(self, parent_id: int, attributes: List[ParentAttribute]) -> None: ...

    @abstractmethod
    def save_parent(self, parent_id: int) -> None: ...

    @abstractmethod
    def sync_variable(self, parent_id: int) -> None:
        """Host's built-in variation sync for variable parents."""

    @abstractmethod
    def delete_parent_transients(self, parent_id: int) -> None: ...

    @abstractmethod
    def set_object_terms(self, parent_id: int, term_ids: List[int], taxonomy: str, append: bool = False) -> None: ...

    @abstractmethod
    def get_object_terms(self, parent_id: int, taxonomy: str) -> List[Term]: ...

    # shared attributes / taxonomies
    @abstractmethod
    def attribute_id_by_name(self, slug: str) -> int:
        """Attribute id for an unprefixed slug, 0 when absent."""

    @abstractmethod
    def create_attribute(self, label: str, slug: str, order_by: str = "name", has_archives: bool = False) -> int: ...

    @abstractmethod
    def taxonomy_exists(self, taxonomy: str) -> bool: ...

    @abstractmethod
    def register_taxonomy(self, taxonomy: str, label: str) -> None: ...

    @abstractmethod
    def list_taxonomies(self) -> List[Taxonomy]: ...

    # terms
    @abstractmethod
    def get_term(self, term_id: int, taxonomy: str) -> Optional[Term]: ...

    @abstractmethod
    def get_term_by_slug(self, slug: str, taxonomy: str) -> Optional[Term]: ...

    @abstractmethod
    def insert_term(self, name: str, taxonomy: str, slug: str) -> Term: ...

    @abstractmethod
    def list_terms(self, taxonomy: str, search: str = "", number: int = 100) -> List[Term]: ...

    # children
    @abstractmethod
    def get_children(self, parent_id: int) -> List[int]: ...

    @abstractmethod
    def get_child(self, child_id: int) -> Optional[Child]: ...

    @abstractmethod
    def get_child_meta(self, child_id: int, key: str) -> str: ...

    @abstractmethod
    def update_child_meta(self, child_id: int, key: str, value: str) -> None: ...

    @abstractmethod
    def delete_child_meta(self, child_id: int, key: str) -> None: ...

    @abstractmethod
    def child_attributes(self, child_id: int) -> Dict[str, str]: ...

    @abstractmethod
    def set_child_attributes(self, child_id: int, attributes: Dict[str, str]) -> None: ...

    @abstractmethod
    def native_child_attributes(self, child_id: int) -> Dict[str, str]:
        """Host-maintained ``{"attribute_<name>": value}`` snapshot."""

    # durable layer and caches
    @abstractmethod
    def read_meta_raw(self, child_id: int, key: str) -> Optional[str]: ...

    @abstractmethod
    def upsert_meta_raw(self, child_id: int, key: str, value: str) -> None: ...

    @abstractmethod
    def invalidate_child_caches(self, child_id: int) -> None: ...

    @contextmanager
    def suspend_hooks(self) -> Iterator[None]:
        """Suspend host save hooks for the duration of the block."""
        yield
