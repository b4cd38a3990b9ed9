from datetime import datetime

import pytest

from registry.services.date_parsing import (
    EPOCH,
    end_of_range,
    ordinal,
    parse_final_date_components,
    process_dates,
    sortable_date,
    title_case,
)


def test_renewal_is_two_years_and_two_days_later():
    dates = process_dates("January 21, 2024")
    assert dates.registered == "January 21, 2024"
    assert dates.renewal == "January 23, 2026"
    assert dates.short_year == "24"


def test_range_uses_last_day():
    dates = process_dates("January 21-23, 2026")
    assert dates.registered == "January 23, 2026"
    assert dates.renewal == "January 25, 2028"
    assert dates.short_year == "26"


def test_cross_month_range():
    assert end_of_range("January 30 - February 2, 2026") == "February 2, 2026"
    assert process_dates("January 30 - February 2, 2026").registered == "February 2, 2026"


def test_renewal_rolls_over_month_end():
    assert process_dates("December 30, 2025").renewal == "January 1, 2028"


def test_leap_day_registration():
    # Feb 29 + 2 years has no Feb 29, so it lands on Mar 1 before adding two days
    assert process_dates("February 29, 2024").renewal == "March 3, 2026"


@pytest.mark.parametrize("text", [None, "", "sometime next week", "TBA"])
def test_unparsable_dates_fall_back(text):
    dates = process_dates(text)
    assert dates.registered == "N/A"
    assert dates.renewal == "N/A"
    assert dates.short_year == "26"


def test_final_date_components_from_range():
    parts = parse_final_date_components("january 14-18, 2026")
    assert parts.year == "2026"
    assert parts.month == "January"
    assert parts.day == 18


def test_final_date_components_takes_last_month():
    parts = parse_final_date_components("March 30 - April 2, 2025")
    assert parts.month == "April"
    assert parts.day == 2
    assert parts.year == "2025"


def test_final_date_components_fallbacks():
    parts = parse_final_date_components("")
    assert (parts.year, parts.month, parts.day) == ("2026", "", 1)

    parts = parse_final_date_components("Week 40")
    assert parts.year == "2026"
    assert parts.month == ""
    assert parts.day == 1


@pytest.mark.parametrize("n, expected", [
    (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
    (11, "11th"), (12, "12th"), (13, "13th"),
    (21, "21st"), (22, "22nd"), (23, "23rd"), (31, "31st"),
])
def test_ordinal(n, expected):
    assert ordinal(n) == expected


def test_title_case_keeps_small_words_lower():
    assert title_case("JANUARY 21-23, 2026") == "January 21-23, 2026"
    assert title_case("the art of war") == "The Art of War"


def test_sortable_date_uses_start_of_range():
    assert sortable_date("JANUARY 23-27, 2026") == datetime(2026, 1, 23)


def test_sortable_date_defaults_year_without_comma():
    assert sortable_date("MARCH 3-5") == datetime(2026, 3, 3)


def test_sortable_date_single_date():
    assert sortable_date("FEBRUARY 2, 2025") == datetime(2025, 2, 2)


@pytest.mark.parametrize("text", [None, "", "NO DATE", "Q3 WORKSHOP"])
def test_sortable_date_unparsable_is_epoch(text):
    assert sortable_date(text) == EPOCH
