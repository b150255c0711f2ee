"""Tests for calendar parsing and formatting helpers."""

from __future__ import annotations

from datetime import date

import pytest

from shop_ledger import date_helpers


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2026-03-10", date(2026, 3, 10)),
        ("2026-03-10T23:59:00", date(2026, 3, 10)),
        (" 2026-01-02 ", date(2026, 1, 2)),
        ("", None),
        (None, None),
        ("10/03/2026", None),
        ("2026-02-30", None),
    ],
)
def test_parse_local_date(raw, expected):
    assert date_helpers.parse_local_date(raw) == expected


def test_format_display_date_uses_day_first_order():
    assert date_helpers.format_display_date("2026-03-10") == "10/03/2026"
    assert date_helpers.format_display_date(date(2026, 12, 1)) == "01/12/2026"


def test_format_display_date_placeholder_for_missing_values():
    assert date_helpers.format_display_date(None) == date_helpers.DISPLAY_PLACEHOLDER
    assert date_helpers.format_display_date("garbage") == "--/--/----"


def test_within_range_is_inclusive_and_supports_open_bounds():
    start, end = date(2026, 3, 1), date(2026, 3, 31)

    assert date_helpers.within_range(start, start, end)
    assert date_helpers.within_range(end, start, end)
    assert not date_helpers.within_range(date(2026, 4, 1), start, end)
    assert date_helpers.within_range(date(2020, 1, 1), None, end)
    assert not date_helpers.within_range(None, start, end)


def test_current_iso_date_follows_today(fixed_today):
    assert date_helpers.current_iso_date() == "2026-03-10"
