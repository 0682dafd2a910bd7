"""
String similarity helpers shared by duplicate detection and import.

- similarity(): normalized Levenshtein similarity in [0, 1]
- keywords(): significant tokens used to build "contains" queries
- slugify(): URL-safe slug with a millisecond timestamp suffix
"""

import re
import time
from typing import Optional

from rapidfuzz.distance import Levenshtein

from ..config import Config


def normalize(text: Optional[str]) -> str:
    """Lower-case and trim."""
    return (text or "").lower().strip()


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Edit-distance similarity between two strings.

    Case-insensitive and whitespace-trimmed. Two strings that are both
    empty after normalization are considered identical (1.0).
    """
    norm_a = normalize(a)
    norm_b = normalize(b)

    if norm_a == norm_b:
        return 1.0

    max_length = max(len(norm_a), len(norm_b))
    if max_length == 0:
        return 1.0

    distance = Levenshtein.distance(norm_a, norm_b)
    return 1.0 - (distance / max_length)


def keywords(text: Optional[str]) -> list[str]:
    """
    Extract significant keywords from a name or address.

    Drops short tokens and stop words ("festival", "swing", "the", ...).
    Order is preserved so the result can be re-joined into a phrase.
    """
    cleaned = re.sub(r"[^\w\s]", " ", (text or "").lower())
    return [
        word for word in cleaned.split()
        if len(word) >= Config.MIN_KEYWORD_LENGTH and word not in Config.STOP_WORDS
    ]


def slugify(name: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Build a slug from a name plus the current millisecond timestamp.

    Not content-addressed: two identical names inserted in the same
    millisecond produce the same slug.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    base = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    base = re.sub(r"\s+", "-", base)
    return f"{base}-{timestamp_ms}"
