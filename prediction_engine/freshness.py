from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class FreshnessMeta:
    fixture_id: str
    cache_key: str
    model_version: str
    data_version: str
    last_updated: str | None
    stale: bool
    source: str = "cache"
    league_id: str = ""
    season: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _to_epoch_seconds(v: object) -> float | None:
    if v is None or v == "" or v == 0:
        return None
    if isinstance(v, datetime):
        dt = v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)
        return dt.timestamp()
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        x = float(v)
        # millisecond epochs are what browsers send
        return x / 1000.0 if x > 1e12 else x
    dt = datetime.fromisoformat(str(v).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def is_stale(
    last_updated: str | datetime | float | None,
    kickoff: float | datetime | None,
    pre_kickoff_ttl_min: float,
    max_staleness_min: float,
    *,
    now: datetime | None = None,
) -> bool:
    """Whether a cached prediction should be refreshed.

    Before kickoff the short ``pre_kickoff_ttl_min`` window applies since
    lineups, odds and injuries move quickly. Once the match has started (or
    when the kickoff is unknown) the long ``max_staleness_min`` window applies.
    Any failure to evaluate counts as stale.
    """
    try:
        now_s = (now or datetime.now(timezone.utc)).timestamp()
        last_s = _to_epoch_seconds(last_updated)
        kickoff_s = _to_epoch_seconds(kickoff)
        max_stale_s = float(max_staleness_min) * 60.0
        if last_s is None:
            return True
        if kickoff_s is None:
            return (now_s - last_s) > max_stale_s
        if now_s < kickoff_s:
            return (now_s - last_s) > float(pre_kickoff_ttl_min) * 60.0
        return (now_s - last_s) > max_stale_s
    except Exception:
        return True
