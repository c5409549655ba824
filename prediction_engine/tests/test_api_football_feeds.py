from __future__ import annotations

import httpx
import pytest

from prediction_engine.feeds.api_football import ApiFootballFeeds
from prediction_engine.records import Fixture
from prediction_engine.resilience.circuit_breaker import reset_breakers
from prediction_engine.tests.fakes import FIXTURE


def _feeds(handler) -> ApiFootballFeeds:
    reset_breakers()
    feeds = ApiFootballFeeds(api_key="k", base_url="https://api.test")
    feeds.client = httpx.AsyncClient(transport=httpx.MockTransport(handler), headers={"x-apisports-key": "k"})
    return feeds


def _game(home_id: int, away_id: int, hg: int, ag: int) -> dict:
    return {"teams": {"home": {"id": home_id}, "away": {"id": away_id}}, "goals": {"home": hg, "away": ag}}


@pytest.mark.asyncio
async def test_recent_form_is_oldest_first_from_team_perspective() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["team"] = request.url.params.get("team")
        seen["key"] = request.headers.get("x-apisports-key")
        # API returns newest first
        games = [_game(42, 7, 2, 0), _game(8, 42, 1, 1), _game(9, 42, 3, 1)]
        return httpx.Response(200, json={"errors": [], "response": games})

    feeds = _feeds(handler)
    form = await feeds.recent_form(FIXTURE, "home")
    await feeds.close()

    assert form == ["L", "D", "W"]
    assert seen == {"path": "/fixtures", "team": "42", "key": "k"}


@pytest.mark.asyncio
async def test_api_errors_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": {"token": "invalid"}, "response": []})

    feeds = _feeds(handler)
    with pytest.raises(RuntimeError):
        await feeds.league_table(FIXTURE)
    await feeds.close()


@pytest.mark.asyncio
async def test_missing_ids_raise_before_any_request() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"response": []})

    feeds = _feeds(handler)
    bare = Fixture(fixture_id="1", home_team="A", away_team="B", league="L", match_date="2024-03-10")
    with pytest.raises(ValueError):
        await feeds.head_to_head(bare)
    assert calls == []
    await feeds.close()
