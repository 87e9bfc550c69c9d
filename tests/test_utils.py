from datetime import datetime, timedelta, timezone

import pytest

from todo_api.utils import format_timestamp, next_timestamp, normalize_bool, normalize_timestamp, utcnow


class TestNormalizeBool:
    @pytest.mark.parametrize("raw,expected", [(True, True), (False, False), (1, True), (0, False)])
    def test_native_and_integer_flags(self, raw, expected):
        assert normalize_bool(raw) is expected

    @pytest.mark.parametrize("raw,expected", [("1", True), ("0", False), ("true", True), (" FALSE ", False)])
    def test_string_flags(self, raw, expected):
        assert normalize_bool(raw) is expected

    @pytest.mark.parametrize("raw", [2, -1, "yes", None, 0.5])
    def test_rejects_other_values(self, raw):
        with pytest.raises(ValueError):
            normalize_bool(raw)


class TestNormalizeTimestamp:
    def test_zulu_string(self):
        dt = normalize_timestamp("2025-01-25T10:15:30.123Z")
        assert dt == datetime(2025, 1, 25, 10, 15, 30, 123000, tzinfo=timezone.utc)

    def test_offset_string_is_converted_to_utc(self):
        dt = normalize_timestamp("2025-01-25T12:15:30+02:00")
        assert dt == datetime(2025, 1, 25, 10, 15, 30, tzinfo=timezone.utc)
        assert dt.utcoffset() == timedelta(0)

    def test_sqlite_space_separated(self):
        dt = normalize_timestamp("2024-01-01 10:00:00")
        assert dt == datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        dt = normalize_timestamp(datetime(2024, 5, 1, 8, 30))
        assert dt.tzinfo is not None
        assert dt.hour == 8

    def test_epoch_milliseconds(self):
        dt = normalize_timestamp(1_700_000_000_000)
        assert dt == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", ["not-a-date", True, None])
    def test_rejects_garbage(self, raw):
        with pytest.raises(ValueError):
            normalize_timestamp(raw)


class TestFormatTimestamp:
    def test_canonical_form(self):
        dt = datetime(2025, 1, 25, 10, 15, 30, 123456, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2025-01-25T10:15:30.123456Z"

    def test_zero_microseconds_are_kept(self):
        assert format_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "2024-01-01T00:00:00.000000Z"

    def test_offset_input(self):
        dt = datetime(2025, 1, 25, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(dt) == "2025-01-25T10:00:00.000000Z"

    def test_parses_back(self):
        now = utcnow()
        assert normalize_timestamp(format_timestamp(now)) == now


class TestNextTimestamp:
    def test_past_value_gives_now(self):
        before = utcnow()
        assert next_timestamp(before - timedelta(days=1)) >= before

    def test_future_value_is_bumped(self):
        ahead = utcnow() + timedelta(seconds=30)
        assert next_timestamp(ahead) == ahead + timedelta(microseconds=1)
