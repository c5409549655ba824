from __future__ import annotations

import asyncio
import gc

import pytest

from prediction_engine.cache.cache_keys import CacheKey
from prediction_engine.cache.kv_store import MemoryKVStore
from prediction_engine.cache.prediction_store import PredictionStore
from prediction_engine.context.aggregator import ContextAggregator
from prediction_engine.errors import AlreadyInProgressError, GenerationTimeoutError, InternalError
from prediction_engine.generation.coordinator import GenerationCoordinator, InFlightRegistry
from prediction_engine.tests.fakes import FIXTURE, GatedGenerator, StaticFeeds


def _coordinator(generate_fn, *, feeds=None, timeout_seconds: float = 5.0) -> tuple[GenerationCoordinator, PredictionStore]:
    store = PredictionStore(MemoryKVStore())
    coordinator = GenerationCoordinator(
        aggregator=ContextAggregator(feeds or StaticFeeds()),
        generate_fn=generate_fn,
        store=store,
        timeout_seconds=timeout_seconds,
        model_version="1.0.0",
        registry=InFlightRegistry(),
    )
    return coordinator, store


@pytest.mark.asyncio
async def test_generate_stores_under_kickoff_date() -> None:
    gen = GatedGenerator()
    gen.release.set()
    coordinator, store = _coordinator(gen)

    record = await coordinator.generate(FIXTURE)

    assert record.model_version == "1.0.0"
    assert record.data_version == "2024-03-10"
    assert record.prediction["confidence"] == "High"
    assert record.prediction["confidencePercentage"] == 100
    cached = await store.get(CacheKey(fixture_id="1035", model_version="1.0.0", data_version="2024-03-10"))
    assert cached is not None
    assert cached.id == record.id
    assert record.verify_integrity() is True


@pytest.mark.asyncio
async def test_second_request_for_same_fixture_fails_fast() -> None:
    gen = GatedGenerator()
    coordinator, _ = _coordinator(gen)

    first = asyncio.ensure_future(coordinator.generate(FIXTURE))
    await gen.started.wait()
    assert coordinator.is_generating("1035") is True

    with pytest.raises(AlreadyInProgressError) as exc:
        await coordinator.generate(FIXTURE)
    assert exc.value.status_code == 409

    gen.release.set()
    record = await first
    assert record.fixture_id == "1035"
    assert gen.calls == 1
    assert coordinator.is_generating("1035") is False


@pytest.mark.asyncio
async def test_timeout_releases_slot() -> None:
    gen = GatedGenerator()
    coordinator, store = _coordinator(gen, timeout_seconds=0.05)

    with pytest.raises(GenerationTimeoutError) as exc:
        await coordinator.generate(FIXTURE)
    assert exc.value.status_code == 504
    assert coordinator.is_generating("1035") is False

    # the abandoned call finishing late must not write to the cache
    gen.release.set()
    await asyncio.sleep(0.01)
    assert await store.get_latest("1035") is None


@pytest.mark.asyncio
async def test_generator_failure_releases_slot() -> None:
    async def broken(fixture, context):
        raise RuntimeError("model offline")

    coordinator, _ = _coordinator(broken)
    with pytest.raises(InternalError):
        await coordinator.generate(FIXTURE)
    assert coordinator.is_generating("1035") is False


@pytest.mark.asyncio
async def test_model_supplied_confidence_is_kept_and_context_is_passed() -> None:
    seen = {}

    async def generate(fixture, context):
        seen.update(context)
        return {"homeWinProbability": 40, "confidence": "Low", "confidencePercentage": 30, "confidenceReason": "derby"}

    coordinator, _ = _coordinator(generate, feeds=StaticFeeds(failing={"head_to_head"}))
    record = await coordinator.generate(FIXTURE, data_version="ts_1710082800")

    assert record.data_version == "ts_1710082800"
    assert record.prediction["confidence"] == "Low"
    assert record.prediction["confidencePercentage"] == 30
    assert record.prediction["confidenceReason"] == "derby"
    assert seen["headToHead"] is None
    assert seen["dataRichness"]["reason"] == "No head-to-head history"
    assert seen["fixture"]["fixture_id"] == "1035"
    assert "feed_failed:head_to_head" in seen["degradation"]["warnings"]


@pytest.mark.asyncio
async def test_cancelled_caller_releases_slot_and_failure_is_collected() -> None:
    unhandled = []
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(lambda _loop, context: unhandled.append(context))
    release = asyncio.Event()
    started = asyncio.Event()

    async def failing_late(fixture, context):
        started.set()
        await release.wait()
        raise RuntimeError("model offline")

    coordinator, _ = _coordinator(failing_late)
    caller = asyncio.ensure_future(coordinator.generate(FIXTURE))
    await started.wait()
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller
    assert coordinator.is_generating("1035") is False

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)
    del caller
    gc.collect()
    loop.set_exception_handler(None)
    assert unhandled == []
