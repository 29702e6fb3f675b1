"""Lexical utilities: tokenization, frequency keywords, fallback embeddings.

Everything here is deterministic and dependency-free so the pipeline can
degrade to it when a provider is unavailable.
"""
from __future__ import annotations

import logging
import re
from collections import Counter

from config.stopwords import STOP_WORDS
from pitchhub.domain import EMBEDDING_DIM, Embedding, Keyword

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 4
FALLBACK_MODEL = "lcg-fallback"

# Linear congruential recurrence (multiplier, increment, modulus)
_LCG_A = 9301
_LCG_C = 49297
_LCG_M = 233280

_SPLIT_PATTERN = re.compile(r"\W+")


def tokenize(text: str) -> list[str]:
    """Split on non-word boundaries and lower-case; empty tokens are dropped."""
    if not text:
        return []
    return [token for token in _SPLIT_PATTERN.split(text.lower()) if token]


def is_candidate_term(token: str) -> bool:
    return len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS


def extract_keywords(text: str, max_terms: int = 10) -> list[Keyword]:
    """Frequency-based keyword extraction.

    Tokens shorter than four characters and stop words are discarded. Each
    returned term is scored ``frequency / total_token_count`` where the total
    counts every token of the text, filtered or not.

    Args:
        text: Input text
        max_terms: Maximum number of keywords returned

    Returns:
        Keywords ordered by descending frequency; ties keep first-seen order
    """
    tokens = tokenize(text)
    if not tokens or max_terms <= 0:
        return []

    counts = Counter(token for token in tokens if is_candidate_term(token))
    total = len(tokens)

    keywords = [
        Keyword(term=term, score=freq / total)
        for term, freq in counts.most_common(max_terms)
    ]
    logger.debug(f"Extracted {len(keywords)} fallback keywords from {total} tokens")
    return keywords


def text_checksum(text: str) -> int:
    """Sum of code points; the seed for the fallback embedding."""
    return sum(ord(char) for char in text)


def fallback_embedding(text: str, dimension: int = EMBEDDING_DIM) -> Embedding:
    """Deterministic pseudo-random vector with components in [-1, 1].

    NOT a semantic embedding: identical text gives an identical vector and
    nothing more. The result is always flagged ``is_fallback``.
    """
    seed = text_checksum(text or "")
    vector: list[float] = []
    for _ in range(dimension):
        seed = (seed * _LCG_A + _LCG_C) % _LCG_M
        vector.append((seed / _LCG_M - 0.5) * 2)
    return Embedding(vector=vector, is_fallback=True, model=FALLBACK_MODEL)
