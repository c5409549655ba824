from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable

from prediction_engine.context.richness import DataRichness, score_richness
from prediction_engine.errors import UpstreamPartialFailure
from prediction_engine.records import Fixture
from prediction_engine.resilience.degradation import Degradation, build_degradation


logger = logging.getLogger(__name__)


class DataFeeds:
    """Upstream football data the aggregator fans out to.

    ``side`` is ``"home"`` or ``"away"``. Implementations raise on failure;
    returning ``None`` means the feed answered with nothing.
    """

    async def league_table(self, fixture: Fixture) -> list[dict[str, Any]] | None:
        raise NotImplementedError

    async def head_to_head(self, fixture: Fixture) -> list[dict[str, Any]] | None:
        raise NotImplementedError

    async def team_stats(self, fixture: Fixture, side: str) -> dict[str, Any] | None:
        raise NotImplementedError

    async def injuries(self, fixture: Fixture, side: str) -> list[dict[str, Any]] | None:
        raise NotImplementedError

    async def recent_form(self, fixture: Fixture, side: str) -> list[str] | str | None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


@dataclass
class AggregatedContext:
    league_table: list[dict[str, Any]] | None = None
    head_to_head: list[dict[str, Any]] | None = None
    home_stats: dict[str, Any] | None = None
    away_stats: dict[str, Any] | None = None
    home_injuries: list[dict[str, Any]] | None = None
    away_injuries: list[dict[str, Any]] | None = None
    home_form: list[str] | str | None = None
    away_form: list[str] | str | None = None
    failures: list[UpstreamPartialFailure] = field(default_factory=list)
    degradation: Degradation = field(default_factory=lambda: Degradation(level=0, warnings=[]))

    def form_override(self) -> dict[str, Any] | None:
        if not self.home_form or not self.away_form:
            return None
        return {
            "homeTeam": {"recentForm": self.home_form, "last5Results": self.home_form[-5:]},
            "awayTeam": {"recentForm": self.away_form, "last5Results": self.away_form[-5:]},
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "leagueTable": self.league_table,
            "headToHead": self.head_to_head,
            "homeTeamStats": self.home_stats,
            "awayTeamStats": self.away_stats,
            "homeTeamInjuries": self.home_injuries,
            "awayTeamInjuries": self.away_injuries,
            "formOverride": self.form_override(),
            "degradation": {"level": self.degradation.level, "warnings": list(self.degradation.warnings)},
        }


class ContextAggregator:
    def __init__(self, feeds: DataFeeds) -> None:
        self._feeds = feeds

    async def close(self) -> None:
        await self._feeds.close()

    async def aggregate(self, fixture: Fixture) -> tuple[AggregatedContext, DataRichness]:
        calls: dict[str, Awaitable[Any]] = {
            "league_table": self._feeds.league_table(fixture),
            "head_to_head": self._feeds.head_to_head(fixture),
            "home_stats": self._feeds.team_stats(fixture, "home"),
            "away_stats": self._feeds.team_stats(fixture, "away"),
            "home_injuries": self._feeds.injuries(fixture, "home"),
            "away_injuries": self._feeds.injuries(fixture, "away"),
            "home_form": self._feeds.recent_form(fixture, "home"),
            "away_form": self._feeds.recent_form(fixture, "away"),
        }
        results = await asyncio.gather(*calls.values(), return_exceptions=True)

        ctx = AggregatedContext()
        for name, res in zip(calls.keys(), results):
            if isinstance(res, Exception):
                logger.warning("feed %s failed for fixture %s: %s", name, fixture.fixture_id, res)
                ctx.failures.append(UpstreamPartialFailure(name, res))
                continue
            if isinstance(res, BaseException):
                raise res
            setattr(ctx, name, res)

        failed = [f.source for f in ctx.failures]
        ctx.degradation = build_degradation(failed_feeds=failed, total_feeds=len(calls))

        richness = score_richness(
            home_stats=ctx.home_stats,
            away_stats=ctx.away_stats,
            home_form=ctx.home_form,
            away_form=ctx.away_form,
            h2h_meetings=len(ctx.head_to_head or []),
            injuries_reachable=("home_injuries" not in failed) or ("away_injuries" not in failed),
            standings_available=bool(ctx.league_table),
        )
        return ctx, richness
