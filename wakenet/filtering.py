"""
Filter & scorer - decides which events a subscription receives.

Keyword checks are case-insensitive substring matches:
- Exclude keywords reject on any match over title, body and source
- Include keywords, when present, require at least one match
- Scores count include-keyword hits over title and body, plus fixed
  bonuses for high-signal words on promoter subscriptions
"""

from .adapters.base import CandidateEvent
from .database.models import OutputFormat, SubscriptionFilters

INCLUDE_KEYWORD_POINTS = 10

# High-signal words that make an event worth promoting
PROMO_KEYWORDS: dict[str, int] = {
    "release": 10,
    "breaking": 15,
    "security": 15,
    "launch": 10,
    "announce": 8,
}


def _text(*parts: str | None) -> str:
    return " ".join(p for p in parts if p).lower()


def matches(event: CandidateEvent, filters: SubscriptionFilters | None) -> bool:
    """Check the event against the subscription's keyword filters."""
    if filters is None:
        return True
    text = _text(event.title, event.body, event.source)

    if any(k.lower() in text for k in filters.exclude_keywords):
        return False

    if filters.include_keywords and not any(k.lower() in text for k in filters.include_keywords):
        return False

    return True


def score(event: CandidateEvent, filters: SubscriptionFilters | None) -> int:
    if filters is None:
        return 0
    text = _text(event.title, event.body)
    return sum(INCLUDE_KEYWORD_POINTS for k in filters.include_keywords if k.lower() in text)


def promo_score(event: CandidateEvent, filters: SubscriptionFilters | None) -> int:
    text = _text(event.title, event.body)
    bonus = sum(points for keyword, points in PROMO_KEYWORDS.items() if keyword in text)
    return score(event, filters) + bonus


def passes(
    event: CandidateEvent,
    filters: SubscriptionFilters | None,
    output_format: OutputFormat = OutputFormat.DEFAULT,
) -> bool:
    """Keyword filters plus the minimum score for the subscription's format."""
    if not matches(event, filters):
        return False
    min_score = filters.min_score if filters else 0
    if output_format == OutputFormat.PROMOTER:
        return promo_score(event, filters) >= min_score
    return score(event, filters) >= min_score
