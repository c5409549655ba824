from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from starlette.requests import Request

from api_gateway.app.settings import Settings
from prediction_engine.cache.kv_store import KeyValueStore, MemoryKVStore, SqliteKVStore
from prediction_engine.cache.prediction_store import PredictionStore
from prediction_engine.context.aggregator import ContextAggregator, DataFeeds
from prediction_engine.errors import ConfigError
from prediction_engine.feeds.api_football import ApiFootballFeeds
from prediction_engine.generation.client import HttpPredictionGenerator
from prediction_engine.generation.coordinator import GenerationCoordinator, GenerateFn
from prediction_engine.verification.service import VerificationService


logger = logging.getLogger(__name__)


@dataclass
class EngineState:
    store: PredictionStore
    verifier: VerificationService
    coordinator: GenerationCoordinator | None = None

    @classmethod
    def build(
        cls,
        kv: KeyValueStore,
        *,
        feeds: DataFeeds | None = None,
        generate_fn: GenerateFn | None = None,
        model_version: str | None = None,
        timeout_seconds: float | None = None,
    ) -> "EngineState":
        store = PredictionStore(kv)
        coordinator = None
        if feeds is not None and generate_fn is not None:
            coordinator = GenerationCoordinator(
                aggregator=ContextAggregator(feeds),
                generate_fn=generate_fn,
                store=store,
                timeout_seconds=timeout_seconds,
                model_version=model_version,
            )
        return cls(store=store, verifier=VerificationService(store), coordinator=coordinator)


def build_kv_store(cfg: Settings) -> KeyValueStore | None:
    backend = str(cfg.kv_backend or "").strip().lower()
    if backend == "sqlite":
        return SqliteKVStore(db_path=Path(cfg.kv_db_path))
    if backend == "memory":
        return MemoryKVStore()
    if backend:
        logger.error("unknown kv backend %r, store left unbound", backend)
    return None


def build_engine_state(cfg: Settings) -> EngineState | None:
    kv = build_kv_store(cfg)
    if kv is None:
        return None
    feeds = ApiFootballFeeds(api_key=cfg.api_football_key, base_url=cfg.api_football_base_url) if cfg.api_football_key else None
    generator = HttpPredictionGenerator(url=cfg.generator_url, api_key=cfg.generator_api_key) if cfg.generator_url else None
    return EngineState.build(
        kv,
        feeds=feeds,
        generate_fn=generator,
        model_version=cfg.model_version,
        timeout_seconds=cfg.generation_timeout_seconds,
    )


def get_engine(request: Request) -> EngineState:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise ConfigError(
            "KV binding missing",
            hint="Set FIXTURECAST_KV_BACKEND to 'sqlite' or 'memory'",
        )
    return engine
