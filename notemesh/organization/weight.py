"""Connectivity/recency weight for notes."""

from datetime import datetime

from notemesh.domain.note import MIN_WEIGHT

LINK_BONUS = 0.2
DAILY_DECAY = 0.05
SECONDS_PER_DAY = 24 * 60 * 60


def compute_weight(link_count: int, days_since_update: float) -> float:
    """Score a note by how connected and how fresh it is.

    Args:
        link_count: Number of incoming plus outgoing links
        days_since_update: Fractional days since the note was last updated

    Returns:
        ``1 + 0.2 * link_count - 0.05 * days_since_update``, floored at 0.2
    """
    return max(MIN_WEIGHT, 1 + link_count * LINK_BONUS - days_since_update * DAILY_DECAY)


def days_since(previous: datetime, now: datetime) -> float:
    return (now - previous).total_seconds() / SECONDS_PER_DAY
