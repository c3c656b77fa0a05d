"""Value normalization and key helpers.

- normalize: comparison/cache key (trim, lowercase, de-accent)
- sanitize_key / sanitize_title: the store's key and slug rules
- local_meta_key / taxonomy_meta_key: child meta keys for an attribute
"""
from __future__ import annotations

import re
import unicodedata

from local2global.config.env import TAXONOMY_PREFIX

_ACCENT_FALLBACK = str.maketrans({
    "á": "a", "à": "a", "ã": "a", "â": "a",
    "é": "e", "ê": "e",
    "í": "i",
    "ó": "o", "ô": "o", "õ": "o",
    "ú": "u", "ü": "u",
    "ç": "c",
})
_TAGS = re.compile(r"<[^>]*>")
_KEY_CHARS = re.compile(r"[^a-z0-9_\-]")
_SLUG_SEP = re.compile(r"[^a-z0-9]+")


def normalize(value: str) -> str:
    if value is None:
        return ""
    t = _TAGS.sub("", str(value)).strip().lower()
    t = unicodedata.normalize("NFD", t)
    t = "".join(ch for ch in t if unicodedata.category(ch) != "Mn")
    return t.translate(_ACCENT_FALLBACK).strip()


def sanitize_key(value: str) -> str:
    return _KEY_CHARS.sub("", str(value or "").lower())


def sanitize_title(value: str) -> str:
    return _SLUG_SEP.sub("-", normalize(value)).strip("-")


def taxonomy_key(value: str) -> str:
    """Sanitize and namespace a taxonomy key; empty stays empty."""
    key = sanitize_key(value)
    if key and not key.startswith(TAXONOMY_PREFIX):
        key = TAXONOMY_PREFIX + key
    return key


def local_meta_key(local_name: str) -> str:
    return "attribute_" + sanitize_title(local_name)


def taxonomy_meta_key(taxonomy: str) -> str:
    return "attribute_" + taxonomy
