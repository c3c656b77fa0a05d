from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from local2global.utils.normalizer import sanitize_title, taxonomy_key

REASON_CODES = ("missing_source_meta", "no_slug_match", "already_ok", "fallback_updated")


@dataclass(frozen=True)
class LocalAttribute:
    name: str
    label: str = ""
    values: tuple[str, ...] = ()
    used_in_children: bool = False


@dataclass(frozen=True)
class TargetAttribute:
    taxonomy_key: str  # namespaced, e.g. pa_cor
    label: str = ""
    exists: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "taxonomy_key", taxonomy_key(self.taxonomy_key))


@dataclass(frozen=True)
class TermMapping:
    local_value: str
    desired_term_key: str
    create: bool = False
    term_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "desired_term_key", sanitize_title(self.desired_term_key or self.local_value))

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "TermMapping":
        local_value = str(data.get("local_value") or "")
        desired = data.get("term_slug") or data.get("term_name") or local_value
        return TermMapping(
            local_value=local_value,
            desired_term_key=str(desired),
            create=bool(data.get("create", False)),
            term_name=data.get("term_name"),
        )


@dataclass(frozen=True)
class ResolvedTerm:
    local_value: str
    term_id: int
    term_key: str
    created: bool = False


@dataclass(frozen=True)
class AttributeMapping:
    local: LocalAttribute
    target: TargetAttribute
    create_attribute_if_missing: bool = False
    terms: tuple[TermMapping, ...] = ()
    attribute_args: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "AttributeMapping":
        """Parse the wire shape (local_attr/local_label/target_tax/terms...)."""
        local_name = str(data.get("local_attr") or "")
        local_label = str(data.get("local_label") or local_name)
        terms = tuple(TermMapping.from_dict(t) for t in data.get("terms") or [])
        return AttributeMapping(
            local=LocalAttribute(
                name=local_name,
                label=local_label,
                values=tuple(t.local_value for t in terms),
            ),
            target=TargetAttribute(
                taxonomy_key=str(data.get("target_tax") or ""),
                label=str(data.get("target_label") or local_label),
            ),
            create_attribute_if_missing=bool(data.get("create_attribute", False)),
            terms=terms,
            attribute_args=dict(data.get("attribute_args") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_attr": self.local.name,
            "local_label": self.local.label,
            "target_tax": self.target.taxonomy_key,
            "target_label": self.target.label,
            "create_attribute": self.create_attribute_if_missing,
            "terms": [
                {"local_value": t.local_value, "term_slug": t.desired_term_key, "create": t.create}
                for t in self.terms
            ],
        }


def parse_mappings(items: Sequence[Any]) -> List[AttributeMapping]:
    return [m if isinstance(m, AttributeMapping) else AttributeMapping.from_dict(dict(m)) for m in items]


@dataclass
class ChildStats:
    updated: int = 0
    skipped: int = 0
    total: int = 0
    reasons: Dict[str, int] = field(default_factory=lambda: {r: 0 for r in REASON_CODES})

    @property
    def updated_pct(self) -> float:
        return round(self.updated / self.total * 100, 2) if self.total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated": self.updated,
            "skipped": self.skipped,
            "total_variations": self.total,
            "updated_pct": self.updated_pct,
            "reasons": dict(self.reasons),
        }


@dataclass(frozen=True)
class RemapJob:
    """Child remapping for one migrated attribute."""
    taxonomy_key: str
    local_name: str
    slug_map: Dict[str, str]  # normalized local value -> term key


@dataclass
class MigrationReport:
    created_terms: Dict[str, List[str]] = field(default_factory=dict)
    existing_terms: Dict[str, List[str]] = field(default_factory=dict)
    updated_attributes: List[str] = field(default_factory=list)
    per_child_stats: Dict[str, ChildStats] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created_terms": self.created_terms,
            "existing_terms": self.existing_terms,
            "updated_attrs": self.updated_attributes,
            "variations": {k: v.to_dict() for k, v in self.per_child_stats.items()},
        }


@dataclass
class AttributePreview:
    local_label: str
    target_tax: str
    attribute_exists: bool
    create_attribute: bool
    existing: List[str] = field(default_factory=list)
    create: List[Dict[str, str]] = field(default_factory=list)  # {"value", "slug"}
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_label": self.local_label,
            "target_tax": self.target_tax,
            "attribute_exists": self.attribute_exists,
            "create_attribute": self.create_attribute,
            "terms": {"create": list(self.create), "existing": list(self.existing)},
            "errors": list(self.errors),
        }


@dataclass
class MigrationPreview:
    parent_id: int
    attributes: List[AttributePreview] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.parent_id,
            "attributes": [a.to_dict() for a in self.attributes],
            "errors": list(self.errors),
        }
