"""Similarity primitives: cosine similarity and keyword-set overlap."""
from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from pitchhub.domain import Keyword
from pitchhub.errors import DimensionMismatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape:
        raise DimensionMismatch(
            f"Cannot compare vectors of dimension {vec_a.size} and {vec_b.size}"
        )

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


def normalize_terms(keywords: Iterable[Keyword | str]) -> list[str]:
    """Lower-cased, stripped, de-duplicated terms in their original order."""
    seen: set[str] = set()
    terms: list[str] = []
    for item in keywords:
        term = (item.term if isinstance(item, Keyword) else str(item)).strip().lower()
        if term and term not in seen:
            seen.add(term)
            terms.append(term)
    return terms


def terms_match(a: str, b: str) -> bool:
    """Two terms match when one contains the other."""
    return a in b or b in a


def matching_terms(reference: Sequence[str], terms: Sequence[str]) -> list[str]:
    """Terms from ``terms`` that match at least one reference term."""
    return [term for term in terms if any(terms_match(term, ref) for ref in reference)]


def keyword_overlap_score(
    set_a: Iterable[Keyword | str],
    set_b: Iterable[Keyword | str],
) -> float:
    """Substring-aware overlap: ``|matches| / max(|A|, |B|)`` in [0, 1].

    Matches are counted over the terms of ``set_b``. Returns 0.0 when either
    set is empty.
    """
    terms_a = normalize_terms(set_a)
    terms_b = normalize_terms(set_b)
    if not terms_a or not terms_b:
        return 0.0

    intersection = matching_terms(terms_a, terms_b)
    return len(intersection) / max(len(terms_a), len(terms_b))
