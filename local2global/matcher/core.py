from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from local2global.config.env import TAXONOMY_PREFIX
from local2global.utils.normalizer import normalize, sanitize_title

# Auto-mapping policy: accept a match only strictly above these scores.
TERM_THRESHOLD = 0.5
ATTRIBUTE_THRESHOLD = 0.7


def _lev(a: str, b: str) -> int:
    # Levenshtein distance (iterative DP); attribute/term names are short
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        curr = [i]
        for j, cb in enumerate(b, 1):
            ins = curr[j - 1] + 1
            dele = prev[j] + 1
            sub = prev[j - 1] + (ca != cb)
            curr.append(min(ins, dele, sub))
        prev = curr
    return prev[-1]


def similarity(a: str, b: str) -> float:
    """1 - levenshtein / max(len); 0.0 when either side is empty."""
    if not a or not b:
        return 0.0
    longest = max(len(a), len(b))
    return 1.0 - _lev(a, b) / longest


@dataclass(frozen=True)
class Option:
    key: str
    display_name: str


@dataclass(frozen=True)
class Candidate:
    option: Option
    score: float  # 0..1, higher is better
    reason: str


def best_match(target: str, candidates: Iterable[Option]) -> Optional[Candidate]:
    """Pick the candidate whose normalized display name is closest to target.

    An exact normalized match (on display name or key) short-circuits with
    score 1. Ties keep the first candidate seen.
    """
    tn = normalize(target)
    if not tn:
        return None
    best: Optional[Candidate] = None
    for opt in candidates:
        names = (normalize(opt.display_name), normalize(opt.key))
        if tn in names:
            return Candidate(opt, 1.0, "exact")
        score = similarity(tn, names[0])
        if best is None or score > best.score:
            best = Candidate(opt, score, f"lev:{_lev(tn, names[0])}")
    return best


@dataclass(frozen=True)
class Suggestion:
    key: str
    create: bool
    score: float
    reason: str


def _suggest(target: str, candidates: Sequence[Option], threshold: float) -> Suggestion:
    cand = best_match(target, candidates)
    if cand is not None and cand.score > threshold:
        return Suggestion(cand.option.key, False, cand.score, cand.reason)
    # never leave an item unresolved: propose creating it
    return Suggestion(sanitize_title(target), True, cand.score if cand else 0.0, "create")


def suggest_attribute(local_label: str, taxonomies: Sequence[Option]) -> Suggestion:
    """Suggest a shared attribute for a local label; keys are taxonomy keys."""
    s = _suggest(local_label, taxonomies, ATTRIBUTE_THRESHOLD)
    if s.create:
        return Suggestion(TAXONOMY_PREFIX + s.key if s.key else "", True, s.score, s.reason)
    return s


def suggest_term(local_value: str, terms: Sequence[Option]) -> Suggestion:
    """Suggest a term slug for a local value."""
    return _suggest(local_value, terms, TERM_THRESHOLD)
