from __future__ import annotations

import os


def default_model_version() -> str:
    v = str(os.getenv("FIXTURECAST_MODEL_VERSION", "1.0.0") or "").strip()
    return v or "1.0.0"


def sqlite_busy_timeout_ms() -> int:
    try:
        v = int(str(os.getenv("FIXTURECAST_SQLITE_BUSY_TIMEOUT_MS", "1000") or "").strip())
    except Exception:
        v = 1000
    if v < 100:
        v = 100
    if v > 10_000:
        v = 10_000
    return v


def generation_timeout_seconds() -> float:
    try:
        v = float(str(os.getenv("FIXTURECAST_GENERATION_TIMEOUT_SECONDS", "60") or "").strip())
    except Exception:
        v = 60.0
    if v < 1.0:
        v = 1.0
    if v > 600.0:
        v = 600.0
    return v


def pre_kickoff_ttl_min() -> int:
    try:
        v = int(str(os.getenv("FIXTURECAST_PRE_KICKOFF_TTL_MIN", "90") or "").strip())
    except Exception:
        v = 90
    if v < 1:
        v = 1
    if v > 1440:
        v = 1440
    return v


def max_staleness_min() -> int:
    try:
        v = int(str(os.getenv("FIXTURECAST_MAX_STALENESS_MIN", "1440") or "").strip())
    except Exception:
        v = 1440
    if v < 1:
        v = 1
    if v > 60 * 24 * 30:
        v = 60 * 24 * 30
    return v
