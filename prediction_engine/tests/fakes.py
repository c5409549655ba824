from __future__ import annotations

import asyncio
from typing import Any

from prediction_engine.context.aggregator import DataFeeds
from prediction_engine.records import Fixture


FIXTURE = Fixture(
    fixture_id="1035",
    home_team="Arsenal",
    away_team="Chelsea",
    league="Premier League",
    match_date="2024-03-10T15:00:00Z",
    league_id=39,
    season=2023,
    home_team_id=42,
    away_team_id=49,
)


class StaticFeeds(DataFeeds):
    """Feeds answering from fixed data; names listed in ``failing`` raise."""

    def __init__(self, *, failing: set[str] | None = None) -> None:
        self.failing = set(failing or ())
        self.closed = False

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise RuntimeError(f"{name} down")

    async def league_table(self, fixture: Fixture) -> list[dict[str, Any]] | None:
        self._check("league_table")
        return [{"rank": 1, "team": {"id": 42}}, {"rank": 2, "team": {"id": 49}}]

    async def head_to_head(self, fixture: Fixture) -> list[dict[str, Any]] | None:
        self._check("head_to_head")
        return [{"fixture": {"id": i}} for i in range(4)]

    async def team_stats(self, fixture: Fixture, side: str) -> dict[str, Any] | None:
        self._check(f"{side}_stats")
        return {"team": side, "goals": {"for": 40}}

    async def injuries(self, fixture: Fixture, side: str) -> list[dict[str, Any]] | None:
        self._check(f"{side}_injuries")
        return []

    async def recent_form(self, fixture: Fixture, side: str) -> list[str] | None:
        self._check(f"{side}_form")
        return list("WDWLW")

    async def close(self) -> None:
        self.closed = True


class GatedGenerator:
    """Generator that blocks until ``release`` is set."""

    def __init__(self, prediction: dict[str, Any] | None = None) -> None:
        self.prediction = prediction or {"homeWinProbability": 50, "drawProbability": 30, "awayWinProbability": 20}
        self.release = asyncio.Event()
        self.started = asyncio.Event()
        self.calls = 0

    async def __call__(self, fixture: Fixture, context: dict[str, Any]) -> dict[str, Any]:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return dict(self.prediction)
