from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActualResultIn(BaseModel):
    homeScore: int = Field(ge=0)
    awayScore: int = Field(ge=0)


class StorePredictionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    fixtureId: str | None = Field(default=None, max_length=160)
    matchId: str | None = Field(default=None, max_length=160)
    homeTeam: str | None = Field(default=None, max_length=120)
    awayTeam: str | None = Field(default=None, max_length=120)
    league: str | None = Field(default=None, max_length=120)
    matchDate: str | None = None
    prediction: dict[str, Any] | None = None
    clientFingerprint: str | None = Field(default=None, max_length=256)

    def fixture_id(self) -> str | None:
        v = self.fixtureId or self.matchId
        return str(v).strip() if v is not None and str(v).strip() else None


class VerifyPredictionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fixtureId: str | None = Field(default=None, max_length=160)
    matchId: str | None = Field(default=None, max_length=160)
    actualResult: ActualResultIn | None = None
    source: str | None = Field(default=None, max_length=80)

    def fixture_id(self) -> str | None:
        v = self.fixtureId or self.matchId
        return str(v).strip() if v is not None and str(v).strip() else None


class StorePredictionResponse(BaseModel):
    success: bool = True
    predictionId: str
    integrityHash: str
    message: str = "Prediction stored successfully"


class VerifyPredictionResponse(BaseModel):
    success: bool = True
    predictionId: str
    accuracy: dict[str, bool]
    message: str = "Prediction verified successfully"


class DailyPredictionsResponse(BaseModel):
    predictions: list[dict[str, Any]]
    date: str
    league: str = "all"
    count: int


class FreshnessResponse(BaseModel):
    numeric_predictions: dict[str, Any] | None = None
    reasoning_notes: str = ""
    meta: dict[str, Any] = Field(default_factory=dict)


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    homeTeam: str = Field(min_length=1, max_length=120)
    awayTeam: str = Field(min_length=1, max_length=120)
    league: str = Field(default="", max_length=120)
    matchDate: str
    leagueId: int | None = None
    season: int | None = None
    homeTeamId: int | None = None
    awayTeamId: int | None = None
    dataVersion: str | None = Field(default=None, max_length=80)


class StoreHealthResponse(BaseModel):
    ok: bool
    kvBound: bool
    hasApiKey: bool
    message: str
