"""Transcript normalization before analysis.

Handles Unicode composition, punctuation variants, URLs, and whitespace.
The stored transcript stays raw; only provider and fallback inputs are
normalized.
"""
from __future__ import annotations

import re
import unicodedata

_URL_PATTERN = re.compile(r"https?://\S+|www\.\S+")
_HTML_PATTERN = re.compile(r"<[^>]+>")


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace: collapse multiple spaces, remove leading/trailing."""
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def normalize_punctuation(text: str) -> str:
    """Normalize common punctuation variations."""
    # Smart quotes
    text = text.replace("“", '"').replace("”", '"')
    text = text.replace("‘", "'").replace("’", "'")

    # Dashes
    text = text.replace("–", "-").replace("—", "-")

    # Excessive punctuation
    text = re.sub(r"([!?.]){2,}", r"\1", text)

    return text


def normalize_text(
    text: str,
    *,
    lowercase: bool = False,
    clean_urls: bool = True,
    clean_html_tags: bool = True,
) -> str:
    """Normalize a transcript for analysis.

    Args:
        text: Input text to normalize
        lowercase: Convert to lowercase
        clean_urls: Remove URLs
        clean_html_tags: Remove HTML tags (some providers emit markup)

    Returns:
        Normalized text ("" for blank input)
    """
    if not text or not text.strip():
        return ""

    if clean_html_tags:
        text = _HTML_PATTERN.sub("", text)
    if clean_urls:
        text = _URL_PATTERN.sub("", text)

    # Composed form keeps accented French words as single tokens
    text = unicodedata.normalize("NFC", text)
    text = normalize_punctuation(text)

    if lowercase:
        text = text.lower()

    return normalize_whitespace(text)
