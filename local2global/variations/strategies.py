"""Child resolution strategies, tried in order until one updates the child.

Each strategy's `attempt(child, ctx)` returns an `Outcome`:
- ``updated``: the new taxonomy value was written (and the old key removed)
- ``already_ok``: nothing to do, the child is already migrated
- ``missing_source_meta`` / ``no_slug_match``: this strategy could not decide
"""
from __future__ import annotations
import re
from functools import lru_cache
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from local2global.config.env import InferenceConfig, get_inference_config
from local2global.mapper.models import RemapJob
from local2global.store.base import TaxonomyStore
from local2global.store.records import Child
from local2global.utils.logger import ScopedLogger
from local2global.utils.normalizer import local_meta_key, normalize, sanitize_title, taxonomy_meta_key
from local2global.variations.writer import VerifiedMetaWriter

UPDATED = "updated"
ALREADY_OK = "already_ok"
MISSING_SOURCE = "missing_source_meta"
NO_SLUG_MATCH = "no_slug_match"


@dataclass(frozen=True)
class Outcome:
    status: str
    value: Optional[str] = None
    strategy: str = ""

    @property
    def updated(self) -> bool:
        return self.status == UPDATED


@dataclass
class RemapContext:
    store: TaxonomyStore
    writer: VerifiedMetaWriter
    logger: ScopedLogger
    job: RemapJob
    options: Tuple[str, ...] = ()  # the parent's local option values for this attribute

    @property
    def local_key(self) -> str:
        return local_meta_key(self.job.local_name)

    @property
    def target_key(self) -> str:
        return taxonomy_meta_key(self.job.taxonomy_key)

    def slug_for(self, child_id: int, raw: str, strategy: str) -> Optional[str]:
        normalized = normalize(raw)
        slug = self.job.slug_map.get(normalized)
        if slug is None:
            self.logger.warning("variation.slug_map_missing", {
                "child_id": child_id,
                "strategy": strategy,
                "raw_value": raw,
                "normalized": normalized,
                "available_slugs": sorted(self.job.slug_map),
            })
        return slug


class DirectMetaStrategy:
    name = "direct_meta"

    def attempt(self, child: Child, ctx: RemapContext) -> Outcome:
        store = ctx.store
        current_target = store.get_child_meta(child.id, ctx.target_key)
        current_value = store.get_child_meta(child.id, ctx.local_key)

        if not current_value:
            if current_target:
                return Outcome(ALREADY_OK, current_target, self.name)
            return Outcome(MISSING_SOURCE, strategy=self.name)

        slug = ctx.slug_for(child.id, current_value, self.name)
        if slug is None:
            return Outcome(NO_SLUG_MATCH, strategy=self.name)

        if current_target and current_target == slug:
            # drop the stale local key so only the taxonomy key remains
            store.delete_child_meta(child.id, ctx.local_key)
            return Outcome(ALREADY_OK, slug, self.name)

        ctx.writer.write(child.id, ctx.target_key, slug, remove_key=ctx.local_key)
        return Outcome(UPDATED, slug, self.name)


class VariationAttributesStrategy:
    name = "variation_attributes"

    def attempt(self, child: Child, ctx: RemapContext) -> Outcome:
        attributes = ctx.store.child_attributes(child.id)
        wanted = sanitize_title(ctx.job.local_name)
        source_key, current_value = None, ""
        for key, value in attributes.items():
            name = key[len("attribute_"):] if key.startswith("attribute_") else key
            if sanitize_title(name) == wanted and value:
                source_key, current_value = key, value
                break

        if source_key is None:
            ctx.logger.info("variation.fallback.no_attribute", {
                "child_id": child.id, "looking_for": wanted, "available_attributes": sorted(attributes),
            })
            return Outcome(MISSING_SOURCE, strategy=self.name)

        slug = ctx.slug_for(child.id, current_value, self.name)
        if slug is None:
            return Outcome(NO_SLUG_MATCH, strategy=self.name)

        updated = {k: v for k, v in attributes.items() if k != source_key}
        updated[ctx.job.taxonomy_key] = slug
        ctx.store.set_child_attributes(child.id, updated)
        ctx.writer.write(child.id, ctx.target_key, slug, remove_key=ctx.local_key)
        return Outcome(UPDATED, slug, self.name)


class TitleSkuInferenceStrategy:
    """Infer the option from the child's title and SKU.

    Options match as whole tokens of the normalized text (so "180/90" does
    not match inside "1180/90"); an option whose every occurrence lies
    inside a longer matched option gives way to it. Zero or several remaining
    candidates decide nothing.
    """

    name = "inference"

    def __init__(self, config: Optional[InferenceConfig] = None) -> None:
        self.config = config or get_inference_config()

    def candidates(self, title: str, sku: str, options: Sequence[str], slug_map: Dict[str, str]) -> List[str]:
        if len(title) > self.config.max_title_length:
            title = ""
        text = normalize(f"{title} {sku}")
        if not text.strip():
            return []

        spans: Dict[str, List[Tuple[int, int]]] = {}
        for option in options:
            norm = normalize(option)
            if not norm or norm not in slug_map or norm in spans:
                continue
            found = [
                m.span()
                for p in {norm, slug_map[norm]}
                for m in _token_re(p).finditer(text)
            ]
            if found:
                spans[norm] = found

        if len(spans) > self.config.max_candidates:
            return []
        # an option survives unless every occurrence sits inside a longer match
        specific = [
            norm for norm, own in spans.items()
            if not all(_covered(span, spans, norm) for span in own)
        ]
        slugs: List[str] = []
        for norm in specific:
            if slug_map[norm] not in slugs:
                slugs.append(slug_map[norm])
        return slugs

    def attempt(self, child: Child, ctx: RemapContext) -> Outcome:
        if not ctx.options:
            return Outcome(MISSING_SOURCE, strategy=self.name)
        title, sku = child.title, ctx.store.get_child_meta(child.id, "_sku")
        found = self.candidates(title, sku, ctx.options, ctx.job.slug_map)

        if len(found) != 1:
            ctx.logger.info("variation.inference.no_candidates", {
                "child_id": child.id, "title": title, "sku": sku, "candidates": found,
            })
            return Outcome(NO_SLUG_MATCH, strategy=self.name)

        ctx.writer.write(child.id, ctx.target_key, found[0], remove_key=ctx.local_key)
        ctx.logger.info("variation.inference.success", {"child_id": child.id, "inferred_value": found[0]})
        return Outcome(UPDATED, found[0], self.name)


class NativeLookupStrategy:
    name = "native_lookup"

    def attempt(self, child: Child, ctx: RemapContext) -> Outcome:
        native = ctx.store.native_child_attributes(child.id)
        current_value = native.get(ctx.local_key, "")
        if not current_value:
            return Outcome(MISSING_SOURCE, strategy=self.name)

        slug = ctx.slug_for(child.id, current_value, self.name)
        if slug is None:
            return Outcome(NO_SLUG_MATCH, strategy=self.name)

        ctx.writer.write(child.id, ctx.target_key, slug, remove_key=ctx.local_key)
        return Outcome(UPDATED, slug, self.name)


def default_strategies(config: Optional[InferenceConfig] = None) -> tuple:
    return (
        DirectMetaStrategy(),
        VariationAttributesStrategy(),
        TitleSkuInferenceStrategy(config),
        NativeLookupStrategy(),
    )


@lru_cache(maxsize=512)
def _token_re(token: str) -> "re.Pattern[str]":
    return re.compile(r"(?<![a-z0-9])" + re.escape(token) + r"(?![a-z0-9])")


def _covered(span: Tuple[int, int], spans: Dict[str, List[Tuple[int, int]]], norm: str) -> bool:
    start, end = span
    return any(
        s <= start and end <= e and (e - s) > (end - start)
        for other, found in spans.items() if other != norm
        for s, e in found
    )
