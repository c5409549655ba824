"""API-Football implementation of the upstream data feeds."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from prediction_engine.context.aggregator import DataFeeds
from prediction_engine.records import Fixture
from prediction_engine.resilience.circuit_breaker import get_breaker


logger = logging.getLogger(__name__)


class ApiFootballFeeds(DataFeeds):
    breaker_name = "api_football"

    def __init__(self, *, api_key: str, base_url: str = "https://v3.football.api-sports.io", timeout_seconds: float = 15.0) -> None:
        self.BASE_URL = str(base_url).rstrip("/")
        self.client = httpx.AsyncClient(headers={"x-apisports-key": str(api_key)}, timeout=float(timeout_seconds))

    async def _request(self, endpoint: str, params: dict[str, Any]) -> Any:
        return await get_breaker(self.breaker_name).acall(self._fetch, endpoint, params)

    async def _fetch(self, endpoint: str, params: dict[str, Any]) -> Any:
        url = f"{self.BASE_URL}/{endpoint}"
        response = await self.client.get(url, params=params)
        response.raise_for_status()
        data = response.json()
        errors = data.get("errors") if isinstance(data, dict) else None
        if errors:
            logger.error(f"API error on {endpoint}: {errors}")
            raise RuntimeError(f"api_football_error:{endpoint}")
        return data.get("response") if isinstance(data, dict) else None

    @staticmethod
    def _team_id(fixture: Fixture, side: str) -> int:
        tid = fixture.home_team_id if side == "home" else fixture.away_team_id
        if tid is None:
            raise ValueError(f"fixture {fixture.fixture_id} has no {side} team id")
        return int(tid)

    @staticmethod
    def _league_season(fixture: Fixture) -> tuple[int, int]:
        if fixture.league_id is None or fixture.season is None:
            raise ValueError(f"fixture {fixture.fixture_id} has no league/season")
        return int(fixture.league_id), int(fixture.season)

    async def league_table(self, fixture: Fixture) -> list[dict[str, Any]] | None:
        league_id, season = self._league_season(fixture)
        data = await self._request("standings", {"league": league_id, "season": season})
        rows: list[dict[str, Any]] = []
        for league_data in data or []:
            for group in (league_data.get("league") or {}).get("standings") or []:
                if isinstance(group, list):
                    rows.extend(x for x in group if isinstance(x, dict))
                elif isinstance(group, dict):
                    rows.append(group)
        return rows

    async def head_to_head(self, fixture: Fixture) -> list[dict[str, Any]] | None:
        h2h = f"{self._team_id(fixture, 'home')}-{self._team_id(fixture, 'away')}"
        data = await self._request("fixtures/headtohead", {"h2h": h2h, "last": 10})
        return [x for x in (data or []) if isinstance(x, dict)]

    async def team_stats(self, fixture: Fixture, side: str) -> dict[str, Any] | None:
        league_id, season = self._league_season(fixture)
        data = await self._request(
            "teams/statistics",
            {"league": league_id, "season": season, "team": self._team_id(fixture, side)},
        )
        return data if isinstance(data, dict) and data else None

    async def injuries(self, fixture: Fixture, side: str) -> list[dict[str, Any]] | None:
        league_id, season = self._league_season(fixture)
        data = await self._request(
            "injuries",
            {"league": league_id, "season": season, "team": self._team_id(fixture, side)},
        )
        return [x for x in (data or []) if isinstance(x, dict)]

    async def recent_form(self, fixture: Fixture, side: str) -> list[str] | None:
        team_id = self._team_id(fixture, side)
        data = await self._request("fixtures", {"team": team_id, "last": 10, "status": "FT"})
        form: list[str] = []
        for item in data or []:
            teams = item.get("teams") or {}
            goals = item.get("goals") or {}
            hg, ag = goals.get("home"), goals.get("away")
            if not isinstance(hg, int) or not isinstance(ag, int):
                continue
            is_home = (teams.get("home") or {}).get("id") == team_id
            ours, theirs = (hg, ag) if is_home else (ag, hg)
            form.append("W" if ours > theirs else "D" if ours == theirs else "L")
        # oldest first so the tail is the most recent run
        form.reverse()
        return form

    async def close(self) -> None:
        await self.client.aclose()
