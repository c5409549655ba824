from __future__ import annotations

import pytest

from prediction_engine.context.aggregator import ContextAggregator
from prediction_engine.tests.fakes import FIXTURE, StaticFeeds


@pytest.mark.asyncio
async def test_all_feeds_answer() -> None:
    ctx, richness = await ContextAggregator(StaticFeeds()).aggregate(FIXTURE)
    assert ctx.failures == []
    assert ctx.degradation.degraded is False
    assert richness.score == 100
    assert ctx.form_override() == {
        "homeTeam": {"recentForm": list("WDWLW"), "last5Results": list("WDWLW")},
        "awayTeam": {"recentForm": list("WDWLW"), "last5Results": list("WDWLW")},
    }


@pytest.mark.asyncio
async def test_partial_failure_lowers_richness_without_raising() -> None:
    feeds = StaticFeeds(failing={"league_table", "home_stats", "home_injuries"})
    ctx, richness = await ContextAggregator(feeds).aggregate(FIXTURE)

    assert sorted(f.source for f in ctx.failures) == ["home_injuries", "home_stats", "league_table"]
    assert ctx.league_table is None
    assert ctx.away_stats is not None
    # 20 + 25 + 10 + 10 (away injuries still answered) + 2
    assert richness.score == 67
    assert "Limited team stats" in richness.reason
    assert "League standings unavailable" in richness.reason
    assert "Injury feed unavailable" not in richness.reason

    assert ctx.degradation.level == 2
    assert "feed_failed:league_table" in ctx.degradation.warnings
    assert ctx.to_dict()["degradation"]["level"] == 2


@pytest.mark.asyncio
async def test_every_feed_failing_still_returns_context() -> None:
    names = {
        "league_table",
        "head_to_head",
        "home_stats",
        "away_stats",
        "home_injuries",
        "away_injuries",
        "home_form",
        "away_form",
    }
    ctx, richness = await ContextAggregator(StaticFeeds(failing=names)).aggregate(FIXTURE)
    assert len(ctx.failures) == 8
    assert richness.score == 16
    assert richness.level == "Low"
    assert ctx.degradation.level == 3
    assert "all_feeds_failed" in ctx.degradation.warnings
    assert ctx.form_override() is None
