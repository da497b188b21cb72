# =============================================================================
# routing/traffic.py  -  Traffic condition classification
# =============================================================================
#
# Turns a (free-flow duration, duration in traffic) pair into a label a
# person can read at a glance.  The delay ratio is
#
#     (duration_in_traffic - duration) / duration
#
# and the buckets use strict less-than comparisons:
#
#     ratio < 0.10 → light
#     ratio < 0.30 → moderate
#     ratio < 0.50 → heavy
#     otherwise    → severe
#
# A ratio sitting exactly on a threshold (0.10, 0.30, 0.50) therefore lands
# in the MORE severe bucket.
# =============================================================================

import enum

from routing.errors import InvalidRouteError


class TrafficCondition(str, enum.Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    SEVERE = "severe"


_THRESHOLDS = (
    (0.10, TrafficCondition.LIGHT),
    (0.30, TrafficCondition.MODERATE),
    (0.50, TrafficCondition.HEAVY),
)


def delay_ratio(duration: float, duration_in_traffic: float) -> float:
    if duration <= 0:
        raise InvalidRouteError(
            f"Cannot classify traffic for a route with duration {duration}s"
        )
    return (duration_in_traffic - duration) / duration


def classify(duration: float, duration_in_traffic: float) -> TrafficCondition:
    """Classify congestion from free-flow vs. in-traffic durations (seconds).

    Raises:
        InvalidRouteError: if duration is zero or negative.
    """
    ratio = delay_ratio(duration, duration_in_traffic)
    for limit, condition in _THRESHOLDS:
        if ratio < limit:
            return condition
    return TrafficCondition.SEVERE
