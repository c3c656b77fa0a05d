"""Similarity matcher.

Scores free-text local labels/values against existing shared attributes and
terms and proposes a mapping. Pure-python, deterministic. See `core.py`.
"""
