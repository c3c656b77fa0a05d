"""Record types held by the store.

Parent attribute definitions come in two shapes: the canonical
`ParentAttribute` and the legacy dict kept in older snapshots
(``{"name", "value": "A | B", "is_visible", "is_variation", "is_taxonomy"}``).
`coerce_attribute` converts the legacy shape before any logic looks at it.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from local2global.config.env import TAXONOMY_PREFIX


class AttributeKind(str, Enum):
    FREE_TEXT = "free_text"
    TAXONOMY = "taxonomy"


@dataclass
class ParentAttribute:
    name: str
    options: List[Union[str, int]] = field(default_factory=list)
    position: int = 0
    visible: bool = True
    variation: bool = False
    kind: AttributeKind = AttributeKind.FREE_TEXT
    attribute_id: int = 0

    @property
    def is_taxonomy(self) -> bool:
        return self.kind is AttributeKind.TAXONOMY

    @staticmethod
    def from_legacy(data: Dict[str, Any]) -> "ParentAttribute":
        raw = data.get("options")
        if raw is None:
            raw = [v.strip() for v in str(data.get("value") or "").split("|")]
        options = [v for v in raw if v != ""]
        is_tax = bool(data.get("is_taxonomy") or data.get("kind") == AttributeKind.TAXONOMY.value)
        return ParentAttribute(
            name=str(data.get("name") or ""),
            options=options,
            position=int(data.get("position") or 0),
            visible=bool(data.get("is_visible", data.get("visible", True))),
            variation=bool(data.get("is_variation", data.get("variation", False))),
            kind=AttributeKind.TAXONOMY if is_tax else AttributeKind.FREE_TEXT,
            attribute_id=int(data.get("id") or data.get("attribute_id") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


RawAttribute = Union[ParentAttribute, Dict[str, Any]]


def coerce_attribute(raw: RawAttribute) -> ParentAttribute:
    if isinstance(raw, ParentAttribute):
        return raw
    return ParentAttribute.from_legacy(raw)


@dataclass
class Parent:
    id: int
    title: str = ""
    kind: str = "simple"  # simple|variable
    attributes: List[RawAttribute] = field(default_factory=list)
    children: List[int] = field(default_factory=list)

    @property
    def is_variable(self) -> bool:
        return self.kind == "variable"

    def canonical_attributes(self) -> List[ParentAttribute]:
        return [coerce_attribute(a) for a in self.attributes]


@dataclass
class Child:
    id: int
    parent_id: int
    title: str = ""
    meta: Dict[str, str] = field(default_factory=dict)
    attributes: Dict[str, str] = field(default_factory=dict)  # structured variation attributes
    native: Dict[str, str] = field(default_factory=dict)  # host's denormalized "attribute_*" snapshot


@dataclass(frozen=True)
class Term:
    term_id: int
    name: str
    slug: str
    taxonomy: str


@dataclass(frozen=True)
class Taxonomy:
    attribute_id: int
    slug: str  # without namespace prefix
    label: str
    order_by: str = "name"
    has_archives: bool = False

    @property
    def key(self) -> str:
        return TAXONOMY_PREFIX + self.slug

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ObjectTerms:
    """Term assignment for one (parent, taxonomy)."""
    parent_id: int
    taxonomy: str
    term_ids: List[int]
    append: bool = False


def optional_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
