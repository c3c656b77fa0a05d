"""Shared utilities.

- normalizer.py: comparison keys, slugs, child meta keys
- logger.py: scoped structured logger on top of stdlib logging
"""
