"""Text processing utilities for keyphrase matching and content analysis."""

import re


def count_words(text: str) -> int:
    """Count whitespace-separated words in text.

    Args:
        text: Input text.

    Returns:
        Word count.
    """
    return len(text.split())


def normalize_whitespace(text: str) -> str:
    """Collapse every run of whitespace to one space and trim.

    Examples:
        >>> normalize_whitespace("  blue\\n\\t widgets  ")
        'blue widgets'
    """
    return re.sub(r"\s+", " ", text).strip()


def contains_phrase(text: str, phrase: str) -> bool:
    """Case-insensitive substring test.  An empty phrase never matches."""
    phrase = phrase.strip().lower()
    if not phrase:
        return False
    return phrase in text.lower()


def significant_words(phrase: str, min_length: int = 3) -> list[str]:
    """Lowercased words of *phrase* that are at least *min_length* characters.

    Short stop-words ("a", "of", "to") are dropped so that word-by-word
    heading matching is not satisfied by filler.
    """
    return [w for w in phrase.lower().split() if len(w) >= min_length]


def count_phrase_occurrences(text: str, phrase: str) -> int:
    """Count word-boundary, case-insensitive occurrences of *phrase* in *text*.

    Words inside the phrase may be separated by any whitespace in the text.
    """
    words = phrase.lower().split()
    if not words:
        return 0
    # Lookarounds rather than \b so phrases like "c++" or ".net" still match.
    pattern = r"(?<!\w)" + r"\s+".join(re.escape(w) for w in words) + r"(?!\w)"
    return len(re.findall(pattern, text.lower()))


def calculate_keyword_density(
    text: str, keyword: str
) -> dict[str, float | int]:
    """Calculate keyphrase density metrics.

    density = occurrences x words-in-keyphrase / total words x 100

    Args:
        text: The full text content.
        keyword: Single or multi-word keyphrase to measure.

    Returns:
        Dict with density_pct, count, and total_words.
    """
    total_words = count_words(text)
    kw_len = count_words(keyword)

    if total_words == 0 or kw_len == 0:
        return {"density_pct": 0.0, "count": 0, "total_words": total_words}

    count = count_phrase_occurrences(text, keyword)
    density = (count * kw_len / total_words) * 100
    return {
        "density_pct": density,
        "count": count,
        "total_words": total_words,
    }
