from __future__ import annotations

from datetime import datetime, timedelta, timezone

from prediction_engine.freshness import is_stale


NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat()


def test_missing_last_updated_is_stale() -> None:
    assert is_stale(None, None, 90, 1440, now=NOW) is True
    assert is_stale("", NOW.timestamp() + 3600, 90, 1440, now=NOW) is True


def test_pre_kickoff_window_applies_before_kickoff() -> None:
    kickoff = (NOW + timedelta(hours=2)).timestamp()
    assert is_stale(_iso(NOW - timedelta(minutes=91)), kickoff, 90, 1440, now=NOW) is True
    assert is_stale(_iso(NOW - timedelta(minutes=89)), kickoff, 90, 1440, now=NOW) is False


def test_max_window_applies_after_kickoff() -> None:
    kickoff = (NOW - timedelta(minutes=30)).timestamp()
    assert is_stale(_iso(NOW - timedelta(minutes=200)), kickoff, 90, 1440, now=NOW) is False
    assert is_stale(_iso(NOW - timedelta(minutes=1441)), kickoff, 90, 1440, now=NOW) is True


def test_unknown_kickoff_uses_max_window() -> None:
    assert is_stale(_iso(NOW - timedelta(minutes=600)), None, 90, 1440, now=NOW) is False
    assert is_stale(_iso(NOW - timedelta(days=2)), None, 90, 1440, now=NOW) is True


def test_millisecond_kickoff_is_accepted() -> None:
    kickoff_ms = (NOW + timedelta(hours=1)).timestamp() * 1000.0
    assert is_stale(_iso(NOW - timedelta(minutes=120)), kickoff_ms, 90, 1440, now=NOW) is True
    assert is_stale(_iso(NOW - timedelta(minutes=10)), kickoff_ms, 90, 1440, now=NOW) is False


def test_unparseable_input_counts_as_stale() -> None:
    assert is_stale("not-a-date", None, 90, 1440, now=NOW) is True
    assert is_stale(_iso(NOW), "garbage", 90, 1440, now=NOW) is True
