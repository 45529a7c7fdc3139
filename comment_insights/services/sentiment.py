from __future__ import annotations

from comment_insights.models.schemas import Sentiment

_POSITIVE_MARKERS = ("enthusiastic", "positive")
_NEGATIVE_MARKERS = ("critical", "negative")


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    t = text.lower()
    return any(term in t for term in terms)


def normalize_sentiment(text: str | None) -> Sentiment:
    """
    Map a free-text label onto positive / negative / neutral.
    Positive markers are checked first.
    """
    text = text or ""
    if _contains_any(text, _POSITIVE_MARKERS):
        return "positive"
    if _contains_any(text, _NEGATIVE_MARKERS):
        return "negative"
    return "neutral"
