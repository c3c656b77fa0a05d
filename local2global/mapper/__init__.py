"""Mapper: migrate a parent's local attributes onto shared taxonomies.

- models.py: mapping request/response data model
- planner.py: dry-run preview, never mutates the store
- engine.py: apply (parent rewrite, term assignment, child remapping)
"""
