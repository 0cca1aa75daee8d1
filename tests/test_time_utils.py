"""Tests for time utilities."""

import pytest
from datetime import datetime, timezone, timedelta

from querydeck.utils.time import normalize_utc_z, to_utc_z, utc_now_z


def test_utc_now_z_always_ends_with_z():
    """Test that utc_now_z() always ends with Z."""
    result = utc_now_z()
    assert result.endswith('Z'), f"Expected result to end with 'Z', got: {result}"


def test_to_utc_z_never_contains_plus_00_00_z():
    """Test that to_utc_z() never returns invalid +00:00Z format."""
    dt = datetime.now(timezone.utc)
    result = to_utc_z(dt)
    assert '+00:00Z' not in result, f"Result should not contain '+00:00Z', got: {result}"


def test_to_utc_z_raises_on_naive_datetime():
    """Test that to_utc_z() raises ValueError for naive datetime."""
    naive_dt = datetime.now()
    with pytest.raises(ValueError, match="Naive datetime not allowed"):
        to_utc_z(naive_dt)


def test_to_utc_z_converts_offsets_to_utc():
    dt = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=5)))
    assert to_utc_z(dt) == "2024-01-01T07:00:00.000000Z"


def test_to_utc_z_fixed_width_sorts_like_time():
    """Whole-second and fractional timestamps must compare in time order as strings."""
    whole = to_utc_z(datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc))
    fractional = to_utc_z(datetime(2024, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc))
    later = to_utc_z(datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc))
    assert sorted([later, fractional, whole]) == [whole, fractional, later]


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-03-01T10:00:00Z", "2024-03-01T10:00:00.000000Z"),
        ("2024-03-01T10:00:00+02:00", "2024-03-01T08:00:00.000000Z"),
        ("2024-03-01T10:00:00.25Z", "2024-03-01T10:00:00.250000Z"),
    ],
)
def test_normalize_utc_z(value, expected):
    assert normalize_utc_z(value) == expected


def test_normalize_utc_z_rejects_naive_and_garbage():
    with pytest.raises(ValueError, match="Naive datetime not allowed"):
        normalize_utc_z("2024-03-01T10:00:00")
    with pytest.raises(ValueError, match="Invalid ISO 8601 timestamp"):
        normalize_utc_z("yesterday")
