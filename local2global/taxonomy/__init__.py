"""Shared attribute (taxonomy) and term resolution.

- terms.py: `TermResolver` with an explicit per-run `ResolverCache`
"""
