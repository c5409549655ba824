from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from prediction_engine.cache.cache_keys import (
    ACCURACY_PREFIX,
    CacheKey,
    accuracy_key,
    daily_index_key,
    kickoff_date,
    legacy_key,
)
from prediction_engine import config
from prediction_engine.cache.kv_store import KeyValueStore
from prediction_engine.errors import ConflictError, InternalError
from prediction_engine.freshness import FreshnessMeta, is_stale
from prediction_engine.records import AccuracyRecord, DailyIndexEntry, PredictionRecord, utc_now_iso
from prediction_engine.resilience.circuit_breaker import CircuitOpenError


logger = logging.getLogger(__name__)

LEGACY_VERSION = "legacy"

# Payload field names used before the current prediction shape.
_LEGACY_PAYLOAD_ALIASES = {
    "predictedScore": "predictedScoreline",
    "score": "predictedScoreline",
    "homeWinProb": "homeWinProbability",
    "drawProb": "drawProbability",
    "awayWinProb": "awayWinProbability",
}


def _pointer_key(fixture_id: str) -> str:
    return f"fixture:{fixture_id}"


@dataclass(frozen=True)
class CacheLookup:
    cache_key: str
    fixture_id: str
    record: PredictionRecord | None
    source: str

    @property
    def found(self) -> bool:
        return self.record is not None


def translate_legacy(fixture_id: str, raw: dict[str, Any]) -> PredictionRecord:
    """Lift a fixture-id-only record into the current record shape."""
    payload0 = raw.get("prediction") if isinstance(raw.get("prediction"), dict) else {}
    payload: dict[str, Any] = {}
    for k, v in payload0.items():
        new_k = _LEGACY_PAYLOAD_ALIASES.get(str(k), str(k))
        if new_k in payload and new_k != k:
            continue
        payload[new_k] = v
    last = raw.get("predictionTime") or raw.get("timestamp") or utc_now_iso()
    record = PredictionRecord.from_dict(
        {
            "id": raw.get("id") or f"pred_{fixture_id}_legacy",
            "matchId": str(raw.get("matchId") or fixture_id),
            "homeTeam": raw.get("homeTeam") or "",
            "awayTeam": raw.get("awayTeam") or "",
            "league": raw.get("league") or raw.get("leagueId") or "",
            "matchDate": raw.get("matchDate") or "",
            "prediction": payload,
            "predictionTime": str(last),
            "integrityHash": raw.get("integrityHash") or "",
            "clientFingerprint": raw.get("clientFingerprint"),
            "modelVersion": LEGACY_VERSION,
            "dataVersion": LEGACY_VERSION,
            "verified": raw.get("verified", False),
            "verifiedAt": raw.get("verifiedAt"),
            "actualResult": raw.get("actualResult"),
            "accuracy": raw.get("accuracy"),
            "verificationSource": raw.get("verificationSource"),
        }
    )
    return record


class PredictionStore:
    """Versioned, fixture-shaped prediction cache over a key-value store.

    Records live under the strong key ``pred:{fixture}:{model}:{data}``. A
    per-fixture pointer remembers the newest strong key so fixture-id lookups
    (verification, raw reads) do not need to know the versions. Records from
    before versioning sit under ``prediction:{fixture}`` and are translated on
    read, never rewritten in their old shape.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    @property
    def kv(self) -> KeyValueStore:
        return self._kv

    async def _read_json(self, key: str) -> Any:
        try:
            raw = await self._kv.get(key)
        except CircuitOpenError:
            logger.warning("kv circuit open, treating %s as a miss", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("discarding undecodable value under %s", key)
            return None

    async def _write_json(self, key: str, value: Any) -> None:
        try:
            await self._kv.put(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))
        except CircuitOpenError as e:
            raise InternalError("store_unavailable") from e

    async def put(self, key: CacheKey, record: PredictionRecord) -> None:
        """Write a record under its strong key. A fixture that has been verified is closed to writes."""
        for existing in (await self._read_record(key.strong()), await self.get_latest(key.fixture_id)):
            if existing is not None and existing.verified:
                raise ConflictError("Prediction already verified", matchId=key.fixture_id, verifiedAt=existing.verified_at)
        record.model_version = key.model_version
        record.data_version = key.data_version
        await self._write_json(key.strong(), record.to_dict())
        await self._write_json(_pointer_key(key.fixture_id), key.strong())
        await self._append_daily_index(record)
        logger.info("stored prediction %s under %s", record.id, key.strong())

    async def _append_daily_index(self, record: PredictionRecord) -> None:
        try:
            day = kickoff_date(record.match_date)
        except ValueError:
            logger.warning("prediction %s has no parseable kickoff, not indexed", record.id)
            return
        idx_key = daily_index_key(day)
        existing = await self._read_json(idx_key)
        entries = [DailyIndexEntry.from_dict(x) for x in (existing if isinstance(existing, list) else []) if isinstance(x, dict)]
        if any(e.fixture_id == record.fixture_id for e in entries):
            return
        entries.append(
            DailyIndexEntry(
                fixture_id=record.fixture_id,
                prediction_id=record.id,
                home_team=record.home_team,
                away_team=record.away_team,
                league=record.league,
            )
        )
        await self._write_json(idx_key, [e.to_dict() for e in entries])

    async def _read_record(self, key: str) -> PredictionRecord | None:
        raw = await self._read_json(key)
        return PredictionRecord.from_dict(raw) if isinstance(raw, dict) else None

    async def lookup(self, key: CacheKey) -> CacheLookup:
        """Strong key, then the fixture's newest record for the same model, then the legacy key."""
        record = await self._read_record(key.strong())
        if record is not None:
            return CacheLookup(cache_key=key.strong(), fixture_id=key.fixture_id, record=record, source="strong")
        pointed = await self._read_json(_pointer_key(key.fixture_id))
        if isinstance(pointed, str) and pointed != key.strong():
            latest = await self._read_record(pointed)
            if latest is not None and latest.model_version == key.model_version:
                return CacheLookup(cache_key=pointed, fixture_id=key.fixture_id, record=latest, source="latest")
        legacy = await self.get_legacy(key.fixture_id)
        if legacy is not None:
            return CacheLookup(cache_key=key.strong(), fixture_id=key.fixture_id, record=legacy, source="legacy")
        return CacheLookup(cache_key=key.strong(), fixture_id=key.fixture_id, record=None, source="miss")

    async def get(self, key: CacheKey) -> PredictionRecord | None:
        return (await self.lookup(key)).record

    async def get_legacy(self, fixture_id: str) -> PredictionRecord | None:
        raw = await self._read_json(legacy_key(str(fixture_id)))
        if not isinstance(raw, dict):
            return None
        return translate_legacy(str(fixture_id), raw)

    async def get_latest(self, fixture_id: str) -> PredictionRecord | None:
        strong = await self._read_json(_pointer_key(str(fixture_id)))
        if isinstance(strong, str):
            raw = await self._read_json(strong)
            if isinstance(raw, dict):
                return PredictionRecord.from_dict(raw)
        return await self.get_legacy(str(fixture_id))

    async def save_latest(self, record: PredictionRecord) -> None:
        """Overwrite a record in place under its own strong key (no index append)."""
        key = CacheKey(
            fixture_id=record.fixture_id,
            model_version=record.model_version or LEGACY_VERSION,
            data_version=record.data_version or LEGACY_VERSION,
        )
        await self._write_json(key.strong(), record.to_dict())
        await self._write_json(_pointer_key(record.fixture_id), key.strong())

    async def daily_index(self, day: str) -> list[DailyIndexEntry]:
        raw = await self._read_json(daily_index_key(day))
        if not isinstance(raw, list):
            return []
        return [DailyIndexEntry.from_dict(x) for x in raw if isinstance(x, dict)]

    async def get_by_date(self, day: str, *, league: str | None = None) -> list[PredictionRecord]:
        entries = await self.daily_index(day)
        if league:
            needle = league.strip().lower()
            entries = [e for e in entries if needle in e.league.lower()]
        out: list[PredictionRecord] = []
        for e in entries:
            rec = await self.get_latest(e.fixture_id)
            if rec is not None:
                out.append(rec)
        return out

    async def put_accuracy(self, record: AccuracyRecord) -> bool:
        key = accuracy_key(record.id)
        if await self._read_json(key) is not None:
            return False
        await self._write_json(key, record.to_dict())
        return True

    async def count_predictions(self) -> int:
        try:
            pointed = {k.split(":", 1)[1] for k in await self._kv.list_keys("fixture:")}
            legacy = {k.split(":", 1)[1] for k in await self._kv.list_keys(legacy_key(""))}
        except CircuitOpenError:
            return 0
        return len(pointed | legacy)

    async def list_accuracy(self) -> list[AccuracyRecord]:
        try:
            keys = await self._kv.list_keys(f"{ACCURACY_PREFIX}:")
        except CircuitOpenError:
            logger.warning("kv circuit open, accuracy projection unavailable")
            return []
        out: list[AccuracyRecord] = []
        for k in keys:
            raw = await self._read_json(k)
            if isinstance(raw, dict):
                out.append(AccuracyRecord.from_dict(raw))
        return out


def build_freshness_payload(
    lookup: CacheLookup,
    *,
    model_version: str,
    data_version: str,
    kickoff: float | None,
    pre_kickoff_ttl_min: float | None = None,
    max_staleness_min: float | None = None,
    league_id: str | None = None,
    season: str | None = None,
) -> dict[str, Any]:
    record = lookup.record
    if pre_kickoff_ttl_min is None:
        pre_kickoff_ttl_min = config.pre_kickoff_ttl_min()
    if max_staleness_min is None:
        max_staleness_min = config.max_staleness_min()
    if record is None:
        meta = FreshnessMeta(
            fixture_id=lookup.fixture_id,
            cache_key=lookup.cache_key,
            model_version=model_version,
            data_version=data_version,
            last_updated=None,
            stale=True,
            league_id=str(league_id or ""),
            season=str(season or ""),
        )
        return {"numeric_predictions": None, "reasoning_notes": "", "meta": meta.to_dict()}

    notes = record.prediction.get("reasoning_notes") or record.prediction.get("confidenceReason") or ""
    meta = FreshnessMeta(
        fixture_id=record.fixture_id,
        cache_key=lookup.cache_key,
        model_version=model_version,
        data_version=data_version,
        last_updated=record.prediction_time,
        stale=is_stale(record.prediction_time, kickoff, pre_kickoff_ttl_min, max_staleness_min),
        league_id=str(league_id or record.league or ""),
        season=str(season or ""),
    )
    return {"numeric_predictions": record.prediction, "reasoning_notes": str(notes), "meta": meta.to_dict()}
