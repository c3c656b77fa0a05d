"""Idempotent resolution of shared attributes and their terms.

A `ResolverCache` is created once per apply run and handed to the
`TermResolver`; within that run a given attribute or term is created at
most once, however many mappings reference it.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from local2global.config.env import TAXONOMY_PREFIX
from local2global.errors import AttributeMissingError, TermMissingError
from local2global.mapper.models import ResolvedTerm, TermMapping
from local2global.store.base import TaxonomyStore
from local2global.utils.logger import ScopedLogger
from local2global.utils.normalizer import sanitize_title, taxonomy_key


@dataclass(frozen=True)
class AttributeInfo:
    attribute_id: int
    taxonomy_key: str


@dataclass
class ResolverCache:
    attributes: Dict[str, AttributeInfo] = field(default_factory=dict)
    terms: Dict[tuple[str, str], ResolvedTerm] = field(default_factory=dict)

    def get_term(self, taxonomy: str, key: str) -> Optional[ResolvedTerm]:
        return self.terms.get((taxonomy, key))

    def put_term(self, taxonomy: str, term: ResolvedTerm) -> None:
        self.terms[(taxonomy, term.term_key)] = term


class TermResolver:
    def __init__(self, store: TaxonomyStore, logger: ScopedLogger, cache: Optional[ResolverCache] = None) -> None:
        self.store = store
        self.logger = logger
        self.cache = cache if cache is not None else ResolverCache()

    def ensure_attribute(
        self,
        target_taxonomy: str,
        label: str,
        create_if_missing: bool = False,
        args: Optional[Dict[str, Any]] = None,
    ) -> AttributeInfo:
        key = taxonomy_key(target_taxonomy)
        if not key:
            raise AttributeMissingError("Target taxonomy is empty.")
        cached = self.cache.attributes.get(key)
        if cached is not None:
            return cached

        args = args or {}
        slug = key[len(TAXONOMY_PREFIX):]
        label = normalize_label(label) or slug
        attribute_id = self.store.attribute_id_by_name(slug)
        if not attribute_id:
            if not create_if_missing:
                raise AttributeMissingError(f"Global attribute {key} does not exist.")
            attribute_id = self.store.create_attribute(
                label,
                slug,
                order_by=args.get("order_by", "name"),
                has_archives=bool(args.get("enable_archive")),
            )
            self.logger.info("attribute.created", {"taxonomy": key, "attribute_id": attribute_id})
        else:
            self.logger.info("attribute.existing", {"taxonomy": key, "attribute_id": attribute_id})

        # a freshly created attribute must be queryable immediately
        if not self.store.taxonomy_exists(key):
            self.store.register_taxonomy(key, label)

        info = AttributeInfo(attribute_id=int(attribute_id), taxonomy_key=key)
        self.cache.attributes[key] = info
        return info

    def ensure_terms(
        self,
        taxonomy: str,
        term_mappings: Sequence[TermMapping],
        allow_creation: bool = False,
    ) -> List[ResolvedTerm]:
        taxonomy = taxonomy_key(taxonomy)
        if not self.store.taxonomy_exists(taxonomy):
            raise TermMissingError(f"Taxonomy {taxonomy} is not registered.")

        results: List[ResolvedTerm] = []
        for mapping in term_mappings:
            key = sanitize_title(mapping.desired_term_key or mapping.local_value)
            resolved = self.cache.get_term(taxonomy, key)
            via = "cache"
            if resolved is None:
                resolved = self._lookup(taxonomy, key, mapping)
                via = "lookup"
            created = False
            if resolved is None:
                if not (mapping.create or allow_creation):
                    raise TermMissingError(
                        f'Term "{mapping.local_value}" does not exist in taxonomy {taxonomy}.'
                    )
                term = self.store.insert_term(mapping.term_name or mapping.local_value, taxonomy, key)
                resolved = ResolvedTerm(mapping.local_value, term.term_id, term.slug, created=True)
                created = True
                self.logger.info("term.created", {"taxonomy": taxonomy, "slug": term.slug, "term_id": term.term_id})
            else:
                self.logger.info("term.reuse", {
                    "taxonomy": taxonomy, "slug": resolved.term_key, "term_id": resolved.term_id, "via": via,
                })
            self.cache.put_term(taxonomy, resolved)
            if key != resolved.term_key:
                self.cache.terms[(taxonomy, key)] = resolved
            results.append(ResolvedTerm(mapping.local_value, resolved.term_id, resolved.term_key, created))
        return results

    def _lookup(self, taxonomy: str, key: str, mapping: TermMapping) -> Optional[ResolvedTerm]:
        term = self.store.get_term_by_slug(key, taxonomy)
        if term is None:
            return None
        # a lookup hit was not created in this run
        return ResolvedTerm(mapping.local_value, term.term_id, term.slug, created=False)


def normalize_label(label: str) -> str:
    return " ".join(str(label or "").split())
