"""Preference strength scoring.

strength = clamp(min(frequency / 5, 1.0) * decay, 0.1, 1.0)

decay:
- 0.8 when last used more than 90 days ago
- 0.9 when last used more than 30 days ago
- 1.0 otherwise
"""

from datetime import datetime, timezone
from typing import Optional

from .ports import utc_now

FULL_STRENGTH_FREQUENCY = 5
MIN_STRENGTH = 0.1
MAX_STRENGTH = 1.0

# (days since last use, multiplier), checked in order
RECENCY_DECAY = (
    (90, 0.8),
    (30, 0.9),
)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def recency_decay(last_used: datetime, now: Optional[datetime] = None) -> float:
    """Multiplier for how long ago a preference was last used."""
    now = _aware(now or utc_now())
    days_since_used = (now - _aware(last_used)).total_seconds() / 86400
    for threshold_days, multiplier in RECENCY_DECAY:
        if days_since_used > threshold_days:
            return multiplier
    return 1.0


def calculate_preference_strength(
    frequency: int,
    last_used: datetime,
    now: Optional[datetime] = None
) -> float:
    """Calculate preference strength from usage history.

    Args:
        frequency: Number of confirmations
        last_used: Time of the latest confirmation
        now: Reference time (defaults to current UTC time)

    Returns:
        Strength between 0.1 and 1.0
    """
    strength = min(frequency / FULL_STRENGTH_FREQUENCY, 1.0) * recency_decay(last_used, now)
    return max(MIN_STRENGTH, min(MAX_STRENGTH, strength))
