from datetime import UTC, datetime, timedelta, timezone

from shared.clock import as_utc


def test_naive_value_is_taken_as_utc():
    assert as_utc(datetime(2024, 5, 15, 18, 0)) == datetime(2024, 5, 15, 18, 0, tzinfo=UTC)


def test_aware_value_is_converted_to_utc():
    kigali = timezone(timedelta(hours=2))
    converted = as_utc(datetime(2024, 5, 15, 20, 0, tzinfo=kigali))

    assert converted.tzinfo is UTC
    assert converted.hour == 18


def test_none_passes_through():
    assert as_utc(None) is None
