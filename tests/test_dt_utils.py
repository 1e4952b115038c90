"""Tests for the pure date/time helpers in utils/dt_utils.py."""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from custom_components.bandsync.utils import dt_utils

UTC = ZoneInfo("UTC")
BERLIN = ZoneInfo("Europe/Berlin")


@pytest.fixture(autouse=True)
def restore_default_timezone():
    """Keep the module-level default timezone isolated between tests."""
    original = dt_utils.get_default_timezone()
    yield
    dt_utils.set_default_timezone(original)


class TestParsing:
    """Test dt_parse and friends."""

    def test_parse_iso_with_offset(self) -> None:
        result = dt_utils.dt_parse("2024-03-01T19:00:00+01:00")

        assert result == datetime(2024, 3, 1, 18, 0, tzinfo=UTC)

    def test_parse_naive_uses_default_timezone(self) -> None:
        dt_utils.set_default_timezone(BERLIN)

        result = dt_utils.dt_parse("2024-03-01T19:00:00")

        assert result == datetime(2024, 3, 1, 19, 0, tzinfo=BERLIN)

    def test_parse_plain_date_is_midnight(self) -> None:
        result = dt_utils.dt_parse(date(2024, 3, 1), UTC)

        assert result == datetime(2024, 3, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "not a date", 42])
    def test_parse_invalid(self, value) -> None:
        assert dt_utils.dt_parse(value) is None

    def test_parse_date_formats(self) -> None:
        assert dt_utils.dt_parse_date("2025-04-07") == date(2025, 4, 7)
        assert dt_utils.dt_parse_date("04/07/2025") == date(2025, 4, 7)
        assert dt_utils.dt_parse_date("2025/04/07") == date(2025, 4, 7)
        assert dt_utils.dt_parse_date("someday") is None

    def test_to_utc_iso(self) -> None:
        dt_utils.set_default_timezone(BERLIN)

        assert (
            dt_utils.dt_to_utc_iso(datetime(2024, 7, 1, 20, 0))
            == "2024-07-01T18:00:00+00:00"
        )
        assert dt_utils.dt_to_utc_iso("garbage") is None

    def test_end_of_day_for_bare_dates(self) -> None:
        dt_utils.set_default_timezone(BERLIN)

        assert dt_utils.dt_parse_end_of_day("2024-01-15") == datetime(
            2024, 1, 15, 23, 59, 59, 999999, tzinfo=BERLIN
        )
        assert dt_utils.dt_parse_end_of_day(date(2024, 1, 15), UTC) == datetime(
            2024, 1, 15, 23, 59, 59, 999999, tzinfo=UTC
        )

    def test_end_of_day_keeps_explicit_times(self) -> None:
        assert dt_utils.dt_parse_end_of_day(
            "2024-01-15T00:00:00+00:00"
        ) == datetime(2024, 1, 15, tzinfo=UTC)
        assert dt_utils.dt_parse_end_of_day(None) is None


class TestConversion:
    """Test timezone conversion."""

    def test_as_local_assumes_naive_is_utc(self) -> None:
        result = dt_utils.as_local(datetime(2024, 1, 1, 12, 0), BERLIN)

        assert result.hour == 13
        assert result.tzinfo == BERLIN

    def test_as_utc_assumes_naive_is_local(self) -> None:
        dt_utils.set_default_timezone(BERLIN)

        assert dt_utils.as_utc(datetime(2024, 1, 1, 12, 0)).hour == 11


class TestAlignToReference:
    """Test coercion of window bounds to the anchor's kind."""

    def test_date_against_datetime_start_and_end_of_day(self) -> None:
        reference = datetime(2024, 1, 1, 19, 0, tzinfo=BERLIN)

        start = dt_utils.align_to_reference(date(2024, 1, 5), reference)
        end = dt_utils.align_to_reference(date(2024, 1, 5), reference, end_of_day=True)

        assert start == datetime(2024, 1, 5, tzinfo=BERLIN)
        assert end == datetime.combine(date(2024, 1, 5), time.max, tzinfo=BERLIN)

    def test_datetime_against_date(self) -> None:
        result = dt_utils.align_to_reference(
            datetime(2024, 1, 5, 23, 0, tzinfo=UTC), date(2024, 1, 1)
        )

        assert result == date(2024, 1, 5)

    def test_naive_against_aware(self) -> None:
        reference = datetime(2024, 1, 1, tzinfo=BERLIN)

        result = dt_utils.align_to_reference(datetime(2024, 1, 5, 8, 0), reference)

        assert result.tzinfo == BERLIN


class TestWeekdays:
    """Test 1=Sunday..7=Saturday numbering."""

    @pytest.mark.parametrize(
        ("stored", "python"),
        [(1, 6), (2, 0), (3, 1), (4, 2), (5, 3), (6, 4), (7, 5)],
    )
    def test_round_trip(self, stored: int, python: int) -> None:
        assert dt_utils.weekday_to_python(stored) == python
        assert dt_utils.weekday_from_python(python) == stored

    def test_weekday_of_and_names(self) -> None:
        # 2024-01-07 is a Sunday
        assert dt_utils.weekday_of(date(2024, 1, 7)) == 1
        assert dt_utils.weekday_short_name(1) == "Sun"
        assert dt_utils.weekday_short_name(7) == "Sat"

    def test_long_date(self) -> None:
        assert dt_utils.dt_format_long_date(date(2024, 3, 1)) == "Mar 1, 2024"
