from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

import httpx

from prediction_engine.records import Fixture


logger = logging.getLogger(__name__)


class HttpPredictionGenerator:
    """Calls an external model endpoint with ``{fixture, context}``.

    The endpoint answers either with the prediction object itself or with
    ``{"prediction": {...}}``.
    """

    def __init__(self, *, url: str, api_key: str | None = None, timeout_seconds: float = 55.0) -> None:
        headers = {"content-type": "application/json"}
        if api_key:
            headers["authorization"] = f"Bearer {api_key}"
        self._url = str(url)
        self.client = httpx.AsyncClient(headers=headers, timeout=float(timeout_seconds))

    async def __call__(self, fixture: Fixture, context: dict[str, Any]) -> dict[str, Any]:
        response = await self.client.post(self._url, json={"fixture": asdict(fixture), "context": context})
        response.raise_for_status()
        data = response.json()
        if isinstance(data, dict) and isinstance(data.get("prediction"), dict):
            return data["prediction"]
        if not isinstance(data, dict):
            raise ValueError("generator response is not a JSON object")
        return data

    async def close(self) -> None:
        await self.client.aclose()
