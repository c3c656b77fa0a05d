from __future__ import annotations
from typing import Any, Dict, List, Sequence

from local2global.mapper.models import REASON_CODES, ChildStats, MigrationReport, ResolvedTerm


class ReportBuilder:
    """Accumulates per-attribute results into a `MigrationReport`."""

    def __init__(self) -> None:
        self._created: Dict[str, List[str]] = {}
        self._existing: Dict[str, List[str]] = {}
        self._updated: List[str] = []
        self._stats: Dict[str, ChildStats] = {}

    def add_attribute(self, taxonomy: str, resolved: Sequence[ResolvedTerm]) -> None:
        created = self._created.setdefault(taxonomy, [])
        existing = self._existing.setdefault(taxonomy, [])
        for term in resolved:
            bucket = created if term.created else existing
            if term.term_key not in created and term.term_key not in existing:
                bucket.append(term.term_key)
        if taxonomy not in self._updated:
            self._updated.append(taxonomy)

    def add_child_stats(self, taxonomy: str, stats: ChildStats) -> None:
        self._stats[taxonomy] = stats

    def build(self) -> MigrationReport:
        return MigrationReport(
            created_terms={k: list(v) for k, v in self._created.items() if v},
            existing_terms={k: list(v) for k, v in self._existing.items() if v},
            updated_attributes=list(self._updated),
            per_child_stats=dict(self._stats),
        )


def aggregate_stats(stats: Sequence[ChildStats]) -> ChildStats:
    total = ChildStats()
    for s in stats:
        total.updated += s.updated
        total.skipped += s.skipped
        total.total += s.total
        for reason, count in s.reasons.items():
            total.reasons[reason] = total.reasons.get(reason, 0) + count
    return total


def summary_md(report: Dict[str, Any]) -> str:
    """Render an apply result (`MigrationReport.to_dict()` shape) as Markdown."""
    lines = ["# Migration Summary", ""]
    lines.append("## Attributes")
    for tax in report.get("updated_attrs", []):
        created = report.get("created_terms", {}).get(tax, [])
        existing = report.get("existing_terms", {}).get(tax, [])
        lines.append(f"- {tax}: {len(created)} created, {len(existing)} existing")
    variations = report.get("variations") or {}
    if variations:
        lines.append("\n## Variations")
        for tax, s in variations.items():
            lines.append(
                f"- {tax}: {s['updated']}/{s['total_variations']} updated ({s['updated_pct']}%), {s['skipped']} skipped"
            )
            for reason in REASON_CODES:
                if s["reasons"].get(reason):
                    lines.append(f"  - {reason}: {s['reasons'][reason]}")
    return "\n".join(lines) + "\n"
