"""local2global: migrate free-text product attributes into shared taxonomies.

Components (leaf first):
- utils: value normalization and the scoped structured logger
- matcher: similarity scoring and auto-mapping suggestions
- store: record/taxonomy store interface and an in-memory implementation
- taxonomy: idempotent attribute/term resolution with a per-run cache
- mapper: data model, dry-run planner and apply engine
- variations: child (variation) remapping strategies and verified writes
- exports: report aggregation
- discovery: local attribute discovery with suggested mappings
- api: orchestrator facade and the Flask REST adapter
"""

__version__ = "0.3.0"
