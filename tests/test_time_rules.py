"""Tests for the pure time/overlap/price helpers of the booking engine."""

from datetime import date, datetime
from itertools import product
from types import SimpleNamespace

import pytest

from services.booking_engine import (
    RescheduleRequest,
    compute_price,
    day_of_week,
    normalize_time,
    overlaps,
    parse_date,
    parse_time,
)
from services.exceptions import BookingValidationError, InvalidTimeRange


def _m(hhmm: str) -> int:
    return parse_time(hhmm)


def test_parse_time_converts_to_minutes():
    assert parse_time("00:00") == 0
    assert parse_time("08:30") == 510
    assert parse_time("8:05") == 485
    assert parse_time("24:00") == 1440


@pytest.mark.parametrize("bad", ["", "8", "08:60", "25:00", "24:01", "ab:cd", "08-00", None, 800])
def test_parse_time_rejects_malformed(bad):
    with pytest.raises(BookingValidationError):
        parse_time(bad)


def test_normalize_time_zero_pads():
    assert normalize_time("8:00") == "08:00"
    assert normalize_time(" 17:45 ") == "17:45"


def test_parse_date_accepts_plain_and_timestamp_forms():
    assert parse_date("2030-01-07") == date(2030, 1, 7)
    assert parse_date("2030-01-07T00:00:00.000Z") == date(2030, 1, 7)
    assert parse_date(datetime(2030, 1, 7, 18, 0)) == date(2030, 1, 7)


def test_parse_date_rejects_garbage():
    with pytest.raises(BookingValidationError):
        parse_date("next monday")
    with pytest.raises(BookingValidationError):
        parse_date("")


def test_day_of_week_counts_from_sunday():
    assert day_of_week(date(2030, 1, 6)) == 0   # Sunday
    assert day_of_week(date(2030, 1, 7)) == 1   # Monday
    assert day_of_week(date(2030, 1, 12)) == 6  # Saturday


def test_adjacent_windows_do_not_overlap():
    assert overlaps(_m("08:00"), _m("09:00"), _m("09:00"), _m("10:00")) is False
    assert overlaps(_m("09:00"), _m("10:00"), _m("08:00"), _m("09:00")) is False


def test_partial_and_nested_windows_overlap():
    assert overlaps(_m("08:00"), _m("10:00"), _m("09:00"), _m("11:00"))
    assert overlaps(_m("08:00"), _m("12:00"), _m("09:00"), _m("10:00"))
    assert overlaps(_m("09:00"), _m("10:00"), _m("08:00"), _m("12:00"))


def test_window_overlaps_itself():
    for start, end in [(0, 30), (480, 600), (1380, 1440)]:
        assert overlaps(start, end, start, end)


def test_overlap_is_symmetric_for_boundary_cases():
    points = [0, 60, 120, 180]
    windows = [(s, e) for s, e in product(points, points) if s < e]
    for (a_s, a_e), (b_s, b_e) in product(windows, windows):
        assert overlaps(a_s, a_e, b_s, b_e) == overlaps(b_s, b_e, a_s, a_e)


def test_compute_price_two_hours():
    court = SimpleNamespace(price_per_hour=500)
    assert compute_price(court, "08:00", "10:00") == (2.0, 1000)


def test_compute_price_fractional_hours():
    court = SimpleNamespace(price_per_hour=500)
    hours, price = compute_price(court, "08:00", "09:30")
    assert hours == 1.5
    assert price == 750


def test_compute_price_rounds_money_but_not_hours():
    court = SimpleNamespace(price_per_hour=500)
    hours, price = compute_price(court, "08:00", "08:10")
    assert hours == pytest.approx(1 / 6)
    assert price == 83.33


def test_compute_price_rejects_empty_or_reversed_range():
    court = SimpleNamespace(price_per_hour=500)
    with pytest.raises(InvalidTimeRange):
        compute_price(court, "10:00", "10:00")
    with pytest.raises(InvalidTimeRange):
        compute_price(court, "10:00", "09:00")


def test_reschedule_request_keeps_unset_fields():
    booking = SimpleNamespace(booking_date=date(2030, 1, 7), start_time="08:00", end_time="10:00")

    window = RescheduleRequest(end_time="11:00").merge(booking)
    assert window.booking_date == date(2030, 1, 7)
    assert window.start_time == "08:00"
    assert window.end_time == "11:00"

    window = RescheduleRequest(booking_date="2030-01-08").merge(booking)
    assert window == (date(2030, 1, 8), "08:00", "10:00")


def test_reschedule_request_flags_time_changes_only():
    assert RescheduleRequest(start_time="09:00").changes_time
    assert not RescheduleRequest(booking_date="2030-01-08").changes_time
