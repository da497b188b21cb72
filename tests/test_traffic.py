import pytest

from routing.errors import InvalidRouteError
from routing.traffic import TrafficCondition, classify


@pytest.mark.parametrize("ratio, expected", [
    (0.05, TrafficCondition.LIGHT),
    (0.15, TrafficCondition.MODERATE),
    (0.35, TrafficCondition.HEAVY),
    (0.60, TrafficCondition.SEVERE),
])
def test_classify_buckets(ratio, expected):
    duration = 1000
    assert classify(duration, duration + ratio * duration) == expected


@pytest.mark.parametrize("in_traffic, expected", [
    (1100, TrafficCondition.MODERATE),   # ratio exactly 0.10
    (1300, TrafficCondition.HEAVY),      # ratio exactly 0.30
    (1500, TrafficCondition.SEVERE),     # ratio exactly 0.50
])
def test_threshold_values_fall_into_the_more_severe_bucket(in_traffic, expected):
    assert classify(1000, in_traffic) == expected


def test_no_delay_and_negative_delay_are_light():
    assert classify(600, 600) == TrafficCondition.LIGHT
    assert classify(600, 500) == TrafficCondition.LIGHT


def test_zero_duration_is_rejected():
    with pytest.raises(InvalidRouteError):
        classify(0, 120)


def test_condition_serializes_as_plain_string():
    assert TrafficCondition.HEAVY.value == "heavy"
