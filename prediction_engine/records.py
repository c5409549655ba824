from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from prediction_engine.cache.cache_keys import stable_json_hash


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def integrity_hash(*, fixture_id: str, home_team: str, away_team: str, match_date: str, prediction: dict[str, Any]) -> str:
    return stable_json_hash(
        {
            "matchId": str(fixture_id),
            "homeTeam": str(home_team),
            "awayTeam": str(away_team),
            "matchDate": str(match_date),
            "prediction": prediction,
        }
    )


@dataclass(frozen=True)
class Fixture:
    fixture_id: str
    home_team: str
    away_team: str
    league: str
    match_date: str
    league_id: int | None = None
    season: int | None = None
    home_team_id: int | None = None
    away_team_id: int | None = None


@dataclass(frozen=True)
class ActualResult:
    home_score: int
    away_score: int

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ActualResult":
        return cls(home_score=int(raw["homeScore"]), away_score=int(raw["awayScore"]))

    def to_dict(self) -> dict[str, int]:
        return {"homeScore": int(self.home_score), "awayScore": int(self.away_score)}


@dataclass
class PredictionRecord:
    id: str
    fixture_id: str
    home_team: str
    away_team: str
    league: str
    match_date: str
    prediction: dict[str, Any]
    prediction_time: str = field(default_factory=utc_now_iso)
    integrity_hash: str = ""
    client_fingerprint: str | None = None
    model_version: str | None = None
    data_version: str | None = None
    verified: bool = False
    verified_at: str | None = None
    actual_result: dict[str, int] | None = None
    accuracy: dict[str, bool] | None = None
    verification_source: str | None = None

    @classmethod
    def create(
        cls,
        *,
        fixture_id: str,
        home_team: str,
        away_team: str,
        league: str,
        match_date: str,
        prediction: dict[str, Any],
        client_fingerprint: str | None = None,
        model_version: str | None = None,
        data_version: str | None = None,
    ) -> "PredictionRecord":
        return cls(
            id=f"pred_{fixture_id}_{int(time.time() * 1000)}",
            fixture_id=str(fixture_id),
            home_team=str(home_team),
            away_team=str(away_team),
            league=str(league or ""),
            match_date=str(match_date),
            prediction=dict(prediction),
            client_fingerprint=client_fingerprint,
            model_version=model_version,
            data_version=data_version,
            integrity_hash=integrity_hash(
                fixture_id=str(fixture_id),
                home_team=str(home_team),
                away_team=str(away_team),
                match_date=str(match_date),
                prediction=dict(prediction),
            ),
        )

    def verify_integrity(self) -> bool:
        expected = integrity_hash(
            fixture_id=self.fixture_id,
            home_team=self.home_team,
            away_team=self.away_team,
            match_date=self.match_date,
            prediction=self.prediction,
        )
        return bool(self.integrity_hash) and expected == self.integrity_hash

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "matchId": self.fixture_id,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "league": self.league,
            "matchDate": self.match_date,
            "prediction": self.prediction,
            "predictionTime": self.prediction_time,
            "integrityHash": self.integrity_hash,
            "clientFingerprint": self.client_fingerprint,
            "modelVersion": self.model_version,
            "dataVersion": self.data_version,
            "verified": bool(self.verified),
            "verifiedAt": self.verified_at,
            "actualResult": self.actual_result,
            "accuracy": self.accuracy,
            "verificationSource": self.verification_source,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "PredictionRecord":
        pred = raw.get("prediction")
        return cls(
            id=str(raw.get("id") or ""),
            fixture_id=str(raw.get("matchId") or raw.get("fixtureId") or ""),
            home_team=str(raw.get("homeTeam") or ""),
            away_team=str(raw.get("awayTeam") or ""),
            league=str(raw.get("league") or ""),
            match_date=str(raw.get("matchDate") or ""),
            prediction=dict(pred) if isinstance(pred, dict) else {},
            prediction_time=str(raw.get("predictionTime") or utc_now_iso()),
            integrity_hash=str(raw.get("integrityHash") or ""),
            client_fingerprint=raw.get("clientFingerprint"),
            model_version=raw.get("modelVersion"),
            data_version=raw.get("dataVersion"),
            verified=bool(raw.get("verified")),
            verified_at=raw.get("verifiedAt"),
            actual_result=raw.get("actualResult") if isinstance(raw.get("actualResult"), dict) else None,
            accuracy=raw.get("accuracy") if isinstance(raw.get("accuracy"), dict) else None,
            verification_source=raw.get("verificationSource"),
        )


@dataclass(frozen=True)
class DailyIndexEntry:
    fixture_id: str
    prediction_id: str
    home_team: str
    away_team: str
    league: str

    def to_dict(self) -> dict[str, str]:
        return {
            "matchId": self.fixture_id,
            "predictionId": self.prediction_id,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "league": self.league,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DailyIndexEntry":
        return cls(
            fixture_id=str(raw.get("matchId") or raw.get("fixtureId") or ""),
            prediction_id=str(raw.get("predictionId") or ""),
            home_team=str(raw.get("homeTeam") or ""),
            away_team=str(raw.get("awayTeam") or ""),
            league=str(raw.get("league") or ""),
        )


@dataclass(frozen=True)
class AccuracyRecord:
    id: str
    fixture_id: str
    home_team: str
    away_team: str
    league: str
    prediction_date: str
    match_date: str
    accuracy: dict[str, bool]
    actual_result: dict[str, int]
    verified_at: str

    @classmethod
    def from_prediction(cls, record: PredictionRecord) -> "AccuracyRecord":
        return cls(
            id=record.id,
            fixture_id=record.fixture_id,
            home_team=record.home_team,
            away_team=record.away_team,
            league=record.league,
            prediction_date=record.prediction_time,
            match_date=record.match_date,
            accuracy=dict(record.accuracy or {}),
            actual_result=dict(record.actual_result or {}),
            verified_at=str(record.verified_at or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "matchId": self.fixture_id,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "league": self.league,
            "predictionDate": self.prediction_date,
            "matchDate": self.match_date,
            "accuracy": self.accuracy,
            "actualResult": self.actual_result,
            "verifiedAt": self.verified_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AccuracyRecord":
        acc = raw.get("accuracy")
        actual = raw.get("actualResult")
        return cls(
            id=str(raw.get("id") or ""),
            fixture_id=str(raw.get("matchId") or ""),
            home_team=str(raw.get("homeTeam") or ""),
            away_team=str(raw.get("awayTeam") or ""),
            league=str(raw.get("league") or ""),
            prediction_date=str(raw.get("predictionDate") or ""),
            match_date=str(raw.get("matchDate") or ""),
            accuracy={str(k): bool(v) for k, v in acc.items()} if isinstance(acc, dict) else {},
            actual_result=dict(actual) if isinstance(actual, dict) else {},
            verified_at=str(raw.get("verifiedAt") or ""),
        )
