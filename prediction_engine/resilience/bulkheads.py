from __future__ import annotations

import asyncio
import contextvars
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar


T = TypeVar("T")


def _io_workers() -> int:
    try:
        v = int(str(os.getenv("FIXTURECAST_IO_WORKERS", "8") or "").strip())
    except Exception:
        v = 8
    return max(1, min(64, v))


# Blocking storage calls (sqlite) run here so the event loop never blocks.
KV_POOL = ThreadPoolExecutor(max_workers=_io_workers(), thread_name_prefix="kv-io")


async def run_io(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    return await loop.run_in_executor(KV_POOL, lambda: ctx.run(fn, *args, **kwargs))
