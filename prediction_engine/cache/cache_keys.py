from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any


STRONG_PREFIX = "pred"
LEGACY_PREFIX = "prediction"
DAILY_PREFIX = "daily"
ACCURACY_PREFIX = "accuracy"


def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def stable_json_hash(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return sha256_hex(raw)


@dataclass(frozen=True)
class CacheKey:
    fixture_id: str
    model_version: str
    data_version: str

    def strong(self) -> str:
        return f"{STRONG_PREFIX}:{self.fixture_id}:{self.model_version}:{self.data_version}"

    def legacy(self) -> str:
        return legacy_key(self.fixture_id)


def legacy_key(fixture_id: str) -> str:
    return f"{LEGACY_PREFIX}:{fixture_id}"


def daily_index_key(day: str | date) -> str:
    d = day.isoformat() if isinstance(day, date) else str(day)
    return f"{DAILY_PREFIX}:{d}"


def accuracy_key(prediction_id: str) -> str:
    return f"{ACCURACY_PREFIX}:{prediction_id}"


def kickoff_date(match_date: str | datetime) -> str:
    """UTC calendar date (YYYY-MM-DD) of a kickoff timestamp."""
    if isinstance(match_date, datetime):
        dt = match_date
    else:
        dt = datetime.fromisoformat(str(match_date).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).date().isoformat()


def infer_data_version(fixture_ts: int | None, *, now_utc: datetime | None = None) -> str:
    if fixture_ts:
        return f"ts_{int(fixture_ts)}"
    now = now_utc or datetime.now(timezone.utc)
    return now.date().isoformat()
