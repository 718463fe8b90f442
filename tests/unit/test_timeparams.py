"""Tests for trustctl.claims.timeparams — validity window parsing."""
from __future__ import annotations

import datetime

import pytest

from trustctl.claims.timeparams import TimeParams, parse_time
from trustctl.errors import UsageError

NOW = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
NOW_TS = int(NOW.timestamp())


class TestParseTime:
    @pytest.mark.parametrize("value", ["0", "", "  "])
    def test_unset(self, value: str) -> None:
        assert parse_time(value, NOW) == 0

    @pytest.mark.parametrize(
        ("value", "seconds"),
        [
            ("1h", 3600),
            ("3d", 3 * 86400),
            ("2w", 14 * 86400),
            ("1M", 30 * 86400),
            ("1y", 365 * 86400),
        ],
    )
    def test_relative(self, value: str, seconds: int) -> None:
        assert parse_time(value, NOW) == NOW_TS + seconds

    def test_absolute_date_is_utc_midnight(self) -> None:
        expected = int(datetime.datetime(2024, 6, 1, tzinfo=datetime.timezone.utc).timestamp())
        assert parse_time("2024-06-01", NOW) == expected

    def test_garbage(self) -> None:
        with pytest.raises(UsageError, match="not a valid date"):
            parse_time("soon", NOW)


class TestTimeParams:
    def test_unchanged_by_default(self) -> None:
        params = TimeParams()
        assert not params.is_start_changed()
        assert not params.is_expiry_changed()

    def test_expiry_before_start_rejected(self) -> None:
        with pytest.raises(UsageError, match="must be after the start date"):
            TimeParams(start="2d", expiry="1d").validate(NOW)

    def test_open_ended_window_accepted(self) -> None:
        TimeParams(start="0", expiry="30d").validate(NOW)

    def test_edit_prompts_both_ends(self, scripted: type) -> None:
        prompter = scripted(answers=["0", "30d"])
        params = TimeParams()
        params.edit(prompter)
        assert params.start == "0"
        assert params.expiry == "30d"
        assert len(prompter.asked) == 2

    def test_edit_rejects_invalid_answer(self, scripted: type) -> None:
        with pytest.raises(UsageError):
            TimeParams().edit(scripted(answers=["later"]))
