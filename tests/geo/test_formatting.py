import pytest

from booking_engine.geo.formatting import format_distance, format_duration, format_travel_info


@pytest.mark.parametrize(
    "meters,expected",
    [(0, "0m"), (850, "850m"), (1000, "1.0 km"), (12_345, "12.3 km")],
)
def test_format_distance(meters: int, expected: str):
    assert format_distance(meters) == expected


@pytest.mark.parametrize(
    "seconds,expected",
    [(59, "0 mins"), (2_520, "42 mins"), (3_900, "1 hours 5 mins"), (7_200, "2 hours 0 mins")],
)
def test_format_duration(seconds: int, expected: str):
    assert format_duration(seconds) == expected


def test_format_travel_info():
    assert format_travel_info(12_345, 2_520) == "42 mins / 12.3 km"
