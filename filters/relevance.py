"""
Deterministic relevance scoring for collected items.
No LLM. No ML. Just keyword matching and engagement heuristics.

Score range: 0-10, same scale the LLM analysis source reports, so items
from every source can be ranked together.
"""

import re

# Practical, "you can use this today" topics rank above pure hype.
PRACTICAL_PATTERNS: list[tuple[str, float]] = [
    (r"\b(release[ds]?|launch(es|ed)?|announc(es|ed|ing))\b", 1.0),
    (r"\b(open[- ]?source|framework|sdk|library|tool(kit)?)\b", 1.0),
    (r"\b(benchmark|evaluation|eval)s?\b", 0.5),
    (r"\b(tutorial|guide|how to|walkthrough)\b", 0.5),
    (r"\b(production|deploy(ment|ed)?|at scale)\b", 0.5),
    (r"\b(pricing|cost|revenue|funding|raises?)\b", 0.5),
]

LOW_VALUE_PATTERNS: list[tuple[str, float]] = [
    (r"\b(meme|shitpost|rant)\b", -2.0),
    (r"\b(giveaway|discount code|promo)\b", -2.0),
    (r"\?\s*$", -0.5),
]


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Short keywords ("ai", "rag") must match whole words only.
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword.lower())}(?![a-z0-9])")


def keyword_hits(text: str, keywords: list[str]) -> int:
    """Count how many distinct keywords appear in text."""
    lowered = text.lower()
    return sum(1 for kw in keywords if _keyword_pattern(kw).search(lowered))


def is_relevant(text: str, keywords: list[str], min_hits: int = 1) -> bool:
    return keyword_hits(text, keywords) >= min_hits


def clamp_score(value: float | int | None, low: float = 0.0, high: float = 10.0) -> float | None:
    """Clamp to [low, high]. None, NaN and non-numbers stay None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if value != value:
        return None
    return max(low, min(high, value))


def _engagement_score(engagement: int) -> float:
    """Upvotes/points/stars. Log-ish buckets."""
    if engagement >= 1000:
        return 3.0
    if engagement >= 300:
        return 2.0
    if engagement >= 100:
        return 1.5
    if engagement >= 20:
        return 1.0
    return 0.0


def relevance_score(
    title: str,
    body: str,
    keywords: list[str],
    engagement: int = 0,
) -> float:
    """
    Score an item 0-10.

    base 2 + keyword hits (capped at 4) + practical/low-value patterns
    + engagement bucket.
    """
    text = f"{title}\n{body}"
    score = 2.0 + min(keyword_hits(text, keywords), 4)

    for pattern, weight in PRACTICAL_PATTERNS + LOW_VALUE_PATTERNS:
        if re.search(pattern, text, re.IGNORECASE):
            score += weight

    score += _engagement_score(engagement)
    return round(clamp_score(score), 1)
