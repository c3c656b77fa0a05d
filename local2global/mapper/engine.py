from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from local2global.config.env import TAXONOMY_PREFIX, InferenceConfig
from local2global.errors import (
    ApplyFailedError,
    AttributeMissing,
    AttributeMissingError,
    InvalidParentError,
    MigrationError,
    StoreError,
    TermAssignmentError,
    TermMissingError,
    TermsMissing,
    ValidationError,
    is_conflict,
)
from local2global.exports.reports import ReportBuilder, aggregate_stats
from local2global.mapper.models import AttributeMapping, ChildStats, MigrationReport, RemapJob, parse_mappings
from local2global.store.base import TaxonomyStore
from local2global.store.records import AttributeKind, Parent, ParentAttribute
from local2global.taxonomy.terms import ResolverCache, TermResolver
from local2global.utils.logger import ScopedLogger
from local2global.utils.normalizer import normalize, sanitize_title, taxonomy_key
from local2global.variations.service import ChildRemapper


@dataclass
class _PendingWork:
    """What the attribute phase leaves for finalization."""
    assignments: Dict[str, List[int]] = field(default_factory=dict)
    jobs: List[RemapJob] = field(default_factory=list)
    options: Dict[str, List[str]] = field(default_factory=dict)  # taxonomy -> local option values
    variation: Dict[str, bool] = field(default_factory=dict)  # taxonomy -> used for variations


class MappingEngine:
    """Apply attribute mappings to a parent and migrate its children.

    Attribute phase (per mapping, in order; the first typed failure aborts
    the whole call): validate, resolve the shared attribute and its terms,
    rewrite the parent's attribute definition in place, queue the term
    assignment and the child remap job.

    Finalization: assign terms, remap children, save the parent, sync
    variations, clear transients. Anything raised here surfaces as
    `ApplyFailedError` and nothing already written is rolled back.
    """

    def __init__(
        self,
        store: TaxonomyStore,
        logger: ScopedLogger,
        remapper: Optional[ChildRemapper] = None,
        inference: Optional[InferenceConfig] = None,
    ) -> None:
        self.store = store
        self.logger = logger
        self.remapper = remapper or ChildRemapper(store, logger, inference=inference)

    def apply(
        self,
        parent_id: int,
        mappings: Sequence[Any],
        corr_id: Optional[str] = None,
        auto_create_terms: bool = False,
    ) -> MigrationReport:
        with self.logger.scope({"parent_id": parent_id, "operation": "apply", "corr_id": corr_id}):
            parent = self.store.get_parent(parent_id)
            if parent is None:
                raise InvalidParentError("Invalid product.", status=404, corr_id=corr_id)

            resolver = TermResolver(self.store, self.logger, ResolverCache())
            report = ReportBuilder()
            pending = _PendingWork()
            attributes = parent.canonical_attributes()

            self.logger.info("apply.start", {"mappings": len(mappings)})
            for mapping in parse_mappings(mappings):
                self._apply_mapping(parent, attributes, mapping, resolver, report, pending, corr_id, auto_create_terms)

            self.store.set_parent_attributes(parent_id, attributes)
            try:
                self._finalize(parent, pending, report, corr_id)
            except MigrationError:
                raise
            except Exception as exc:
                self.logger.error("apply.failed", {"exception": exc})
                raise ApplyFailedError(
                    "Failed to apply the mapping.", corr_id=corr_id, details=str(exc)
                ) from exc

            result = report.build()
            self.logger.info("apply.complete", {
                "updated_attrs": result.updated_attributes,
                "created_terms": sum(len(v) for v in result.created_terms.values()),
            })
            return result

    def _apply_mapping(
        self,
        parent: Parent,
        attributes: List[ParentAttribute],
        mapping: AttributeMapping,
        resolver: TermResolver,
        report: ReportBuilder,
        pending: _PendingWork,
        corr_id: Optional[str],
        auto_create_terms: bool,
    ) -> None:
        local_name = mapping.local.name
        target = mapping.target.taxonomy_key
        self.logger.info("mapping.start", {"local_attr": local_name, "target_tax": target})

        # 1. validate
        if not local_name or not target:
            raise ValidationError("Invalid attribute mapping.", corr_id=corr_id)

        # 2. target must exist unless creation was requested
        if not self.store.taxonomy_exists(target) and not mapping.create_attribute_if_missing:
            raise AttributeMissing(
                f"Global attribute {target} does not exist and automatic creation was not selected.",
                corr_id=corr_id,
            )

        # 3. shared attribute
        try:
            info = resolver.ensure_attribute(
                target,
                mapping.target.label or mapping.local.label,
                mapping.create_attribute_if_missing,
                mapping.attribute_args,
            )
        except (AttributeMissingError, StoreError) as exc:
            self.logger.error("mapping.attribute_failed", {"target_tax": target, "exception": exc})
            raise AttributeMissing(str(exc), corr_id=corr_id) from exc

        # 4. terms
        try:
            resolved = resolver.ensure_terms(info.taxonomy_key, mapping.terms, auto_create_terms)
        except (TermMissingError, StoreError) as exc:
            status = 409 if is_conflict(str(exc)) else 400
            self.logger.error("mapping.terms_failed", {"target_tax": target, "exception": exc})
            raise TermsMissing(str(exc), status=status, corr_id=corr_id) from exc

        # 5. dedupe
        term_ids: List[int] = []
        for term in resolved:
            if term.term_id and term.term_id not in term_ids:
                term_ids.append(term.term_id)
        if not term_ids:
            raise ValidationError(f"No terms resolved for {info.taxonomy_key}.", corr_id=corr_id)

        # 6. rewrite the local definition in place
        wanted = sanitize_title(local_name)
        index = next(
            (i for i, a in enumerate(attributes) if not a.is_taxonomy and sanitize_title(a.name) == wanted),
            None,
        )
        if index is None:
            # rerun: the definition was already migrated to this taxonomy
            index = next((i for i, a in enumerate(attributes) if a.name == info.taxonomy_key), None)
        if index is None:
            raise AttributeMissing(f"Local attribute {local_name} not found on the product.", corr_id=corr_id)
        old = attributes[index]
        if not old.is_taxonomy:
            pending.options[info.taxonomy_key] = [str(o) for o in old.options]
        pending.variation[info.taxonomy_key] = old.variation
        attributes[index] = ParentAttribute(
            name=info.taxonomy_key,
            options=list(term_ids),
            position=old.position,
            visible=old.visible,
            variation=old.variation,
            kind=AttributeKind.TAXONOMY,
            attribute_id=info.attribute_id,
        )
        self.logger.info("mapping.attribute_replaced", {
            "local_attr": local_name, "target_tax": info.taxonomy_key, "term_ids": term_ids,
        })

        # 7. queue assignment and child remap
        pending.assignments[info.taxonomy_key] = term_ids
        pending.jobs.append(RemapJob(
            taxonomy_key=info.taxonomy_key,
            local_name=local_name,
            slug_map={normalize(t.local_value): t.term_key for t in resolved},
        ))
        report.add_attribute(info.taxonomy_key, resolved)

    def _finalize(self, parent: Parent, pending: _PendingWork, report: ReportBuilder, corr_id: Optional[str]) -> None:
        errors: List[str] = []
        for taxonomy, term_ids in pending.assignments.items():
            try:
                self.store.set_object_terms(parent.id, term_ids, taxonomy, append=False)
                self.logger.info("terms.assigned", {"taxonomy": taxonomy, "term_ids": term_ids})
            except StoreError as exc:
                errors.append(f"{taxonomy}: {exc}")
        if errors:
            self.logger.error("terms.assignment_failed", {"errors": errors})
            raise TermAssignmentError("; ".join(errors), corr_id=corr_id)

        for job in pending.jobs:
            options = pending.options.get(job.taxonomy_key) or list(job.slug_map)
            if not pending.variation.get(job.taxonomy_key, True):
                # title/SKU inference only reads variation attributes
                options = []
            stats = self.remapper.remap(parent, job, options)
            report.add_child_stats(job.taxonomy_key, stats)

        self.store.save_parent(parent.id)
        if parent.is_variable:
            self.store.sync_variable(parent.id)
        self.store.delete_parent_transients(parent.id)
        self.logger.info("apply.finalized", {"variable": parent.is_variable})

    def resync_children(
        self,
        parent_id: int,
        taxonomy_keys: Optional[Sequence[str]] = None,
        corr_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Re-run child remapping for taxonomies already assigned to the parent.

        The slug map comes from the parent's current terms (name and slug
        both map to the slug) and the old local name is the taxonomy key
        without its prefix.
        """
        with self.logger.scope({"parent_id": parent_id, "operation": "resync", "corr_id": corr_id}):
            parent = self.store.get_parent(parent_id)
            if parent is None:
                raise InvalidParentError("Invalid product.", status=404, corr_id=corr_id)

            wanted = {taxonomy_key(k) for k in taxonomy_keys} if taxonomy_keys else None
            per_taxonomy: Dict[str, ChildStats] = {}
            for attribute in parent.canonical_attributes():
                if not attribute.is_taxonomy:
                    continue
                tax = attribute.name
                if wanted is not None and tax not in wanted:
                    continue
                terms = self.store.get_object_terms(parent_id, tax)
                slug_map: Dict[str, str] = {}
                for term in terms:
                    slug_map[normalize(term.name)] = term.slug
                    slug_map[normalize(term.slug)] = term.slug
                local_name = tax[len(TAXONOMY_PREFIX):] if tax.startswith(TAXONOMY_PREFIX) else tax
                job = RemapJob(taxonomy_key=tax, local_name=local_name, slug_map=slug_map)
                options = [t.name for t in terms] if attribute.variation else []
                per_taxonomy[tax] = self.remapper.remap(parent, job, options)

            aggregate = aggregate_stats(list(per_taxonomy.values()))
            self.logger.info("resync.complete", {"taxonomies": sorted(per_taxonomy), **aggregate.to_dict()})
            return {"per_taxonomy": per_taxonomy, "aggregate": aggregate}
