"""
Text normalization and bounded edit distance for chart matching.

Artist and title strings from listening services, local song.ini files and
the chart catalog differ in case, punctuation, spacing and in-game markup.
Everything compared by the matcher goes through normalize_text() first.

Edit distances are computed with rapidfuzz's Levenshtein implementation
using a score cutoff, so comparisons stop early once the allowed distance
is exceeded.
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein


# In-game markup such as <color=#FF0000>Name</color> or <b>Name</b>
_STYLE_TAG_PATTERN = re.compile(r"<[^<>]*>")

# Anything that is not a letter, digit, underscore or whitespace
_SYMBOL_PATTERN = re.compile(r"[^\w\s]")

_WHITESPACE_PATTERN = re.compile(r"\s+")


def strip_style_tags(text: str) -> str:
    """
    Remove in-game markup tags from a string.

    Args:
        text: Raw text, typically a charter name.

    Returns:
        The text without tags, whitespace trimmed.

    Example:
        strip_style_tags("<color=#FFAA00>Miscellany</color>") -> "Miscellany"
    """
    return _STYLE_TAG_PATTERN.sub("", text or "").strip()


def normalize_text(text: str) -> str:
    """
    Normalize an artist or title for comparison.

    Behavior:
        - Remove markup tags
        - Unicode NFKC normalization and case folding
        - Drop symbols and punctuation ("AC/DC" -> "acdc")
        - Collapse runs of whitespace and trim

    Args:
        text: Raw artist or title.

    Returns:
        Normalized string; empty if nothing comparable remains.
    """
    text = strip_style_tags(text)
    text = unicodedata.normalize("NFKC", text).casefold()
    text = _SYMBOL_PATTERN.sub("", text)
    # \w keeps underscores; treat them as separators
    text = text.replace("_", " ")
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def bounded_distance(a: str, b: str, max_distance: int) -> int:
    """
    Levenshtein distance between two strings, capped at max_distance + 1.

    Args:
        a: First string.
        b: Second string.
        max_distance: Largest distance of interest.

    Returns:
        The exact distance if it is <= max_distance, otherwise
        max_distance + 1.
    """
    if max_distance < 0:
        raise ValueError("max_distance must be non-negative")
    return Levenshtein.distance(a, b, score_cutoff=max_distance)


def within_distance(a: str, b: str, max_distance: int) -> bool:
    """True if the edit distance between a and b is at most max_distance."""
    return bounded_distance(a, b, max_distance) <= max_distance


def titles_match(query_title: str, candidate_title: str, max_distance: int) -> bool:
    """
    Decide whether two normalized titles name the same song.

    Titles match when their edit distance is within max_distance, or when
    one contains the other. Containment covers annotations that only one
    side carries, such as "One (2x bass pedal)" against "One".

    Args:
        query_title: Normalized title being looked up.
        candidate_title: Normalized title of the candidate.
        max_distance: Largest accepted edit distance.

    Returns:
        True if the titles match.
    """
    if not query_title or not candidate_title:
        return False
    if within_distance(query_title, candidate_title, max_distance):
        return True
    return query_title in candidate_title or candidate_title in query_title
