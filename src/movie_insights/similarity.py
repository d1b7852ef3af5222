"""Set similarity primitives shared by the scorers."""

from typing import AbstractSet, Iterable


def jaccard(a: AbstractSet, b: AbstractSet) -> float:
    """
    Symmetric Jaccard similarity |A∩B| / |A∪B|.

    Returns 0.0 when both sets are empty.
    """
    if not a and not b:
        return 0.0
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def coverage(source: AbstractSet, target: AbstractSet) -> float:
    """
    Directional coverage of a fixed target: min(|A∩T| / |T|, 1).

    Normalized by the target's size rather than the union, so a source with
    many extra members is not penalized.
    """
    if not target:
        return 0.0
    matched = len(source & target)
    if matched == 0:
        return 0.0
    return min(matched / len(target), 1.0)


def keyword_coverage(tags: Iterable[str], keywords: Iterable[str]) -> float:
    """
    Fraction of keywords found as a substring of at least one tag, capped at 1.

    Tags are expected to be normalized already; keywords are lower-cased here.
    """
    tags = list(tags)
    keywords = list(keywords)
    if not tags or not keywords:
        return 0.0
    matched = sum(
        1 for keyword in keywords
        if any(keyword.lower() in tag for tag in tags)
    )
    return min(matched / len(keywords), 1.0)
