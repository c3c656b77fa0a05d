"""Record/taxonomy store.

- records.py: parent/child/term record types, legacy attribute coercion
- base.py: `TaxonomyStore` interface the engine depends on
- memory.py: dict-backed implementation with read cache, save hooks and JSON snapshots
"""
