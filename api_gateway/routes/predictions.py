from __future__ import annotations

import hmac
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api_gateway.app.schemas import (
    DailyPredictionsResponse,
    FreshnessResponse,
    GenerateRequest,
    StoreHealthResponse,
    StorePredictionRequest,
    StorePredictionResponse,
    VerifyPredictionRequest,
    VerifyPredictionResponse,
)
from api_gateway.app.settings import settings
from api_gateway.app.state import EngineState, get_engine
from prediction_engine.cache.cache_keys import CacheKey, infer_data_version, kickoff_date
from prediction_engine.cache.kv_store import SqliteKVStore
from prediction_engine.cache.prediction_store import build_freshness_payload
from prediction_engine.errors import AuthError, ConfigError, NotFoundError, ValidationError
from prediction_engine.records import ActualResult, Fixture, PredictionRecord
from prediction_engine.resilience.bulkheads import run_io
from prediction_engine.verification.stats import compute_accuracy_stats


router = APIRouter()
logger = logging.getLogger(__name__)

STORE_REQUIRED = ["fixtureId", "homeTeam", "awayTeam", "league", "matchDate", "prediction"]
VERIFY_REQUIRED = ["fixtureId", "actualResult"]


def _require_api_key(request: Request) -> None:
    expected = settings.prediction_api_key
    if not expected:
        logger.error("write rejected: FIXTURECAST_PREDICTION_API_KEY is not configured")
        raise AuthError("Unauthorized")
    provided = request.headers.get("x-api-key") or ""
    if not hmac.compare_digest(provided.encode("utf-8"), str(expected).encode("utf-8")):
        raise AuthError("Unauthorized")


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def _parse_minutes(raw: str | None, default: int) -> float:
    if raw is None:
        return float(default)
    try:
        v = float(str(raw).strip())
    except ValueError:
        return float(default)
    return v if v > 0 else float(default)


def _is_true(raw: str | None) -> bool:
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


@router.post("/predictions", status_code=201, response_model=StorePredictionResponse)
async def store_prediction(
    req: StorePredictionRequest,
    request: Request,
    engine: EngineState = Depends(get_engine),
) -> StorePredictionResponse:
    _require_api_key(request)
    fid = req.fixture_id()
    if not fid or not req.homeTeam or not req.awayTeam or not req.league or not req.matchDate or not req.prediction:
        raise ValidationError("Missing required fields", required=STORE_REQUIRED)
    try:
        day = kickoff_date(req.matchDate)
    except ValueError:
        raise ValidationError("Invalid matchDate", matchDate=req.matchDate)

    key = CacheKey(fixture_id=fid, model_version=settings.model_version, data_version=day)
    record = PredictionRecord.create(
        fixture_id=fid,
        home_team=req.homeTeam,
        away_team=req.awayTeam,
        league=req.league,
        match_date=req.matchDate,
        prediction=req.prediction,
        client_fingerprint=req.clientFingerprint,
        model_version=key.model_version,
        data_version=key.data_version,
    )
    await engine.store.put(key, record)
    return StorePredictionResponse(predictionId=record.id, integrityHash=record.integrity_hash)


@router.put("/predictions", response_model=VerifyPredictionResponse)
async def verify_prediction(
    req: VerifyPredictionRequest,
    request: Request,
    engine: EngineState = Depends(get_engine),
) -> VerifyPredictionResponse:
    _require_api_key(request)
    fid = req.fixture_id()
    if not fid or req.actualResult is None:
        raise ValidationError("Missing required fields", required=VERIFY_REQUIRED)
    result = ActualResult(home_score=req.actualResult.homeScore, away_score=req.actualResult.awayScore)
    record, breakdown = await engine.verifier.verify_record(fid, result, source=req.source)
    return VerifyPredictionResponse(predictionId=record.id, accuracy=breakdown.to_dict())


@router.get("/predictions")
async def list_predictions(request: Request, engine: EngineState = Depends(get_engine)) -> Any:
    qp = request.query_params
    fid = qp.get("fixtureId") or qp.get("matchId")
    day = qp.get("date")

    if fid:
        record = await engine.store.get_latest(fid)
        if record is None:
            raise NotFoundError("Prediction not found", matchId=fid)
        return JSONResponse(content=record.to_dict())

    if day:
        try:
            date.fromisoformat(day)
        except ValueError:
            raise ValidationError("Invalid date, expected YYYY-MM-DD", date=day)
        league = qp.get("league") or None
        records = await engine.store.get_by_date(day, league=league)
        return DailyPredictionsResponse(
            predictions=[r.to_dict() for r in records],
            date=day,
            league=league or "all",
            count=len(records),
        )

    if _is_true(qp.get("stats")):
        accuracy = await engine.store.list_accuracy()
        total = await engine.store.count_predictions()
        return JSONResponse(content=compute_accuracy_stats(accuracy, total_predictions=total))

    raise ValidationError("Specify fixtureId, date, or stats parameter")


@router.get("/predictions/store/health", response_model=StoreHealthResponse)
async def store_health(request: Request) -> StoreHealthResponse:
    engine = getattr(request.app.state, "engine", None)
    has_key = bool(settings.prediction_api_key)
    if engine is None:
        return StoreHealthResponse(ok=False, kvBound=False, hasApiKey=has_key, message="KV binding missing")
    kv = engine.store.kv
    if isinstance(kv, SqliteKVStore):
        ok = bool(await run_io(kv.quick_check))
        if not ok:
            return StoreHealthResponse(ok=False, kvBound=True, hasApiKey=has_key, message=f"{kv.name} integrity check failed")
    return StoreHealthResponse(ok=True, kvBound=True, hasApiKey=has_key, message=f"{kv.name} store ready")


@router.get("/predictions/{fixture_id}", response_model=FreshnessResponse)
async def get_prediction(
    fixture_id: str,
    request: Request,
    engine: EngineState = Depends(get_engine),
) -> FreshnessResponse:
    qp = request.query_params
    fixture_ts = _parse_int(qp.get("fixture_ts"))
    model_version = qp.get("model_version") or settings.model_version
    data_version = qp.get("data_version") or infer_data_version(fixture_ts)
    pre_ttl = _parse_minutes(qp.get("pre_ttl"), settings.pre_kickoff_ttl_min)
    max_stale = _parse_minutes(qp.get("max_stale"), settings.max_staleness_min)

    key = CacheKey(fixture_id=fixture_id, model_version=model_version, data_version=data_version)
    lookup = await engine.store.lookup(key)
    payload = build_freshness_payload(
        lookup,
        model_version=model_version,
        data_version=data_version,
        kickoff=float(fixture_ts) if fixture_ts else None,
        pre_kickoff_ttl_min=pre_ttl,
        max_staleness_min=max_stale,
        league_id=qp.get("league_id"),
        season=qp.get("season"),
    )
    return FreshnessResponse(**payload)


@router.post("/predictions/{fixture_id}/generate", status_code=201)
async def generate_prediction(
    fixture_id: str,
    req: GenerateRequest,
    request: Request,
    engine: EngineState = Depends(get_engine),
) -> Any:
    _require_api_key(request)
    if engine.coordinator is None:
        raise ConfigError("Prediction generation not configured", hint="Set FIXTURECAST_API_FOOTBALL_KEY and FIXTURECAST_GENERATOR_URL")
    try:
        kickoff_date(req.matchDate)
    except ValueError:
        raise ValidationError("Invalid matchDate", matchDate=req.matchDate)

    fixture = Fixture(
        fixture_id=fixture_id,
        home_team=req.homeTeam,
        away_team=req.awayTeam,
        league=req.league,
        match_date=req.matchDate,
        league_id=req.leagueId,
        season=req.season,
        home_team_id=req.homeTeamId,
        away_team_id=req.awayTeamId,
    )
    record = await engine.coordinator.generate(fixture, data_version=req.dataVersion)
    return JSONResponse(status_code=201, content=record.to_dict())

