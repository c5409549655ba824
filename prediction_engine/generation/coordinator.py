from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Iterator

from prediction_engine.cache.cache_keys import CacheKey, kickoff_date
from prediction_engine.cache.prediction_store import PredictionStore
from prediction_engine.config import default_model_version, generation_timeout_seconds
from prediction_engine.context.aggregator import ContextAggregator
from prediction_engine.context.richness import DataRichness, apply_richness
from prediction_engine.errors import AlreadyInProgressError, EngineError, GenerationTimeoutError, InternalError
from prediction_engine.records import Fixture, PredictionRecord


logger = logging.getLogger(__name__)

GenerateFn = Callable[[Fixture, dict[str, Any]], Awaitable[dict[str, Any]]]


class InFlightRegistry:
    """Fixture ids with a generation currently running in this process."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def __contains__(self, fixture_id: object) -> bool:
        return str(fixture_id) in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @contextlib.contextmanager
    def claim(self, fixture_id: str) -> Iterator[None]:
        fid = str(fixture_id)
        if fid in self._ids:
            raise AlreadyInProgressError("Prediction already being generated for this match", fixtureId=fid)
        self._ids.add(fid)
        try:
            yield
        finally:
            self._ids.discard(fid)


# Process-wide: two coordinators in one process share it, other processes do not.
IN_FLIGHT = InFlightRegistry()


def _retrieve_result(task: asyncio.Future) -> None:
    # the waiter may be gone (timeout, client disconnect); collect the outcome here
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("generation task ended with %s", type(exc).__name__)


class GenerationCoordinator:
    def __init__(
        self,
        *,
        aggregator: ContextAggregator,
        generate_fn: GenerateFn,
        store: PredictionStore,
        timeout_seconds: float | None = None,
        model_version: str | None = None,
        registry: InFlightRegistry | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._generate_fn = generate_fn
        self._store = store
        self._timeout = float(timeout_seconds) if timeout_seconds is not None else generation_timeout_seconds()
        self._model_version = model_version or default_model_version()
        self._registry = registry if registry is not None else IN_FLIGHT

    def is_generating(self, fixture_id: str) -> bool:
        return str(fixture_id) in self._registry

    async def close(self) -> None:
        await self._aggregator.close()
        close = getattr(self._generate_fn, "close", None)
        if close is not None:
            await close()

    async def _aggregate_and_generate(self, fixture: Fixture) -> tuple[dict[str, Any], DataRichness]:
        context, richness = await self._aggregator.aggregate(fixture)
        prompt_context = context.to_dict()
        prompt_context["fixture"] = asdict(fixture)
        prompt_context["dataRichness"] = richness.to_dict()
        prediction = await self._generate_fn(fixture, prompt_context)
        if not isinstance(prediction, dict):
            raise InternalError("generation_returned_invalid_payload")
        return prediction, richness

    async def generate(self, fixture: Fixture, *, data_version: str | None = None) -> PredictionRecord:
        with self._registry.claim(fixture.fixture_id):
            t0 = time.perf_counter()
            logger.info("generating prediction for %s (%s vs %s)", fixture.fixture_id, fixture.home_team, fixture.away_team)
            work = asyncio.ensure_future(self._aggregate_and_generate(fixture))
            work.add_done_callback(_retrieve_result)
            done, _ = await asyncio.wait({work}, timeout=self._timeout)
            if work not in done:
                # Not cancelled: late feed responses are harmless and simply dropped.
                logger.warning("generation for %s timed out after %.1fs", fixture.fixture_id, self._timeout)
                raise GenerationTimeoutError("Prediction generation timeout", fixtureId=fixture.fixture_id)
            try:
                prediction, richness = work.result()
            except EngineError:
                raise
            except Exception as e:
                logger.exception("generation failed for %s", fixture.fixture_id)
                raise InternalError("generation_failed") from e

            payload = apply_richness(prediction, richness)
            dv = data_version or kickoff_date(fixture.match_date)
            key = CacheKey(fixture_id=fixture.fixture_id, model_version=self._model_version, data_version=dv)
            record = PredictionRecord.create(
                fixture_id=fixture.fixture_id,
                home_team=fixture.home_team,
                away_team=fixture.away_team,
                league=fixture.league,
                match_date=fixture.match_date,
                prediction=payload,
                model_version=key.model_version,
                data_version=key.data_version,
            )
            await self._store.put(key, record)
            logger.info(
                "generated prediction %s in %.0fms (richness %d %s)",
                record.id,
                (time.perf_counter() - t0) * 1000.0,
                richness.score,
                richness.level,
            )
            return record
