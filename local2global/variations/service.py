from __future__ import annotations
from typing import Optional, Sequence, Tuple

from local2global.config.env import InferenceConfig
from local2global.mapper.models import ChildStats, RemapJob
from local2global.store.base import TaxonomyStore
from local2global.store.records import Parent
from local2global.utils.logger import ScopedLogger
from local2global.variations.strategies import (
    ALREADY_OK,
    MISSING_SOURCE,
    Outcome,
    RemapContext,
    default_strategies,
)
from local2global.variations.writer import VerifiedMetaWriter


class ChildRemapper:
    """Move every child of a parent from the local meta key to the taxonomy key.

    A child that no strategy can migrate is skipped with the first failure
    reason seen; it never aborts the other children.
    """

    def __init__(
        self,
        store: TaxonomyStore,
        logger: ScopedLogger,
        strategies: Optional[Sequence] = None,
        inference: Optional[InferenceConfig] = None,
    ) -> None:
        self.store = store
        self.logger = logger
        self.strategies = tuple(strategies) if strategies is not None else default_strategies(inference)
        self.writer = VerifiedMetaWriter(store, logger)

    def remap(self, parent: Parent, job: RemapJob, options: Sequence[str] = ()) -> ChildStats:
        stats = ChildStats()
        if not parent.is_variable:
            return stats

        child_ids = self.store.get_children(parent.id)
        stats.total = len(child_ids)
        ctx = RemapContext(self.store, self.writer, self.logger, job, tuple(options))

        for child_id in child_ids:
            child = self.store.get_child(child_id)
            if child is None:
                stats.skipped += 1
                stats.reasons[MISSING_SOURCE] += 1
                self.logger.warning("variation.missing", {"child_id": child_id})
                continue

            outcome, reason = self._first_success(child, ctx)
            if outcome is not None:
                stats.updated += 1
                if outcome.strategy != self.strategies[0].name:
                    stats.reasons["fallback_updated"] += 1
                self.logger.info("variation.update", {
                    "child_id": child_id, "strategy": outcome.strategy, "value": outcome.value,
                })
                continue

            stats.skipped += 1
            stats.reasons[reason] += 1
            if reason == ALREADY_OK:
                self.logger.info("variation.skip.already_ok", {"child_id": child_id})
            else:
                self.logger.warning("variation.skip.no_strategy", {
                    "child_id": child_id,
                    "reason": reason,
                    "tried_strategies": [s.name for s in self.strategies],
                })

        self.logger.info("variation.update.summary", {
            "parent_id": parent.id,
            "taxonomy": job.taxonomy_key,
            "local_attr": job.local_name,
            **stats.to_dict(),
        })
        return stats

    def _first_success(self, child, ctx: RemapContext) -> Tuple[Optional[Outcome], str]:
        """Run strategies in order; (updated outcome, "") or (None, skip reason)."""
        first_failure = None
        for strategy in self.strategies:
            outcome = strategy.attempt(child, ctx)
            if outcome.updated:
                return outcome, ""
            if outcome.status == ALREADY_OK:
                return None, ALREADY_OK
            if first_failure is None:
                first_failure = outcome.status
        return None, first_failure or MISSING_SOURCE
