from datetime import date, datetime

import pytest

from timesheet_costing.common.datetime_utils import coerce_date, months_between
from timesheet_costing.common.normalizers import (
    normalize_areas,
    normalize_discipline_codes,
    normalize_optional_text,
    normalize_platforms,
)
from timesheet_costing.common.validators import require_hours
from timesheet_costing.core.exceptions import ValidationError


def test_discipline_codes_are_trimmed_upper_cased_and_deduplicated():
    assert normalize_discipline_codes([" civ", "STR", "civ ", "", None]) == ["CIV", "STR"]


def test_single_discipline_code_is_accepted_as_scalar():
    assert normalize_discipline_codes("elec") == ["ELEC"]


def test_discipline_codes_required():
    with pytest.raises(ValidationError, match="Discipline code is required"):
        normalize_discipline_codes(["  ", None], required=True)


def test_discipline_codes_optional_may_be_empty():
    assert normalize_discipline_codes(None) == []


def test_too_many_discipline_codes():
    codes = [f"D{i}" for i in range(9)]
    with pytest.raises(ValidationError, match="too many codes"):
        normalize_discipline_codes(codes)


def test_eight_discipline_codes_is_the_limit():
    codes = [f"D{i}" for i in range(8)]
    assert len(normalize_discipline_codes(codes)) == 8


def test_duplicates_do_not_count_towards_the_limit():
    codes = [f"D{i}" for i in range(8)] + ["d0", "D1 "]
    assert len(normalize_discipline_codes(codes)) == 8


def test_areas_deduplicate_case_insensitively_keeping_first_spelling():
    assert normalize_areas(["Topside", "topside ", "Hull", "HULL"]) == ["Topside", "Hull"]


def test_areas_none_means_unchanged():
    assert normalize_areas(None) is None
    assert normalize_areas([]) == []


def test_platforms_exact_dedup():
    assert normalize_platforms(["A-1", "A-1", " B-2"]) == ["A-1", "B-2"]


def test_optional_text_blank_is_none():
    assert normalize_optional_text("   ") is None
    assert normalize_optional_text(" note ") == "note"


def test_require_hours_bounds():
    assert require_hours(None, "Hours") == 0.0
    assert require_hours("7.5", "Hours") == 7.5
    with pytest.raises(ValidationError):
        require_hours(25, "Hours")
    with pytest.raises(ValidationError):
        require_hours(-1, "Hours")
    with pytest.raises(ValidationError, match="must be a number"):
        require_hours("abc", "Hours")
    with pytest.raises(ValidationError, match="finite"):
        require_hours("NaN", "Hours")
    with pytest.raises(ValidationError, match="finite"):
        require_hours(float("inf"), "Hours")


def test_coerce_date_accepts_iso_strings_and_datetimes():
    assert coerce_date("2024-03-15T00:00:00.000Z") == date(2024, 3, 15)
    assert coerce_date(datetime(2024, 3, 15, 10, 30)) == date(2024, 3, 15)
    with pytest.raises(ValidationError):
        coerce_date("15/03/2024")


def test_months_between_crosses_year():
    assert months_between(date(2023, 11, 20), date(2024, 2, 1)) == [(11, 2023), (12, 2023), (1, 2024), (2, 2024)]
    with pytest.raises(ValidationError):
        months_between(date(2024, 2, 1), date(2024, 1, 1))


@pytest.mark.parametrize("raw", [["eng", "ENG", " eng "], "civ", [" str", "Civ", "STR"], None])
def test_discipline_normalization_is_idempotent(raw):
    once = normalize_discipline_codes(raw)
    assert normalize_discipline_codes(once) == once


def test_mixed_case_duplicates_collapse():
    assert normalize_discipline_codes(["eng", "ENG", " eng "]) == ["ENG"]
