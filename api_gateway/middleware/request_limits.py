from __future__ import annotations

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from api_gateway.app.settings import settings


PREFLIGHT_METHODS = "GET,POST,PUT,OPTIONS"
PREFLIGHT_HEADERS = "Content-Type, Authorization, X-API-Key"


def _max_body_bytes() -> int:
    v = int(getattr(settings, "max_json_body_bytes", 131072) or 131072)
    return max(8192, v)


def _is_json_content_type(request: Request) -> bool:
    ct = request.headers.get("content-type")
    if not isinstance(ct, str):
        return False
    ct = ct.split(";")[0].strip().lower()
    return ct == "application/json"


def _allow_origin(request: Request) -> str:
    origins = list(settings.cors_allow_origins or [])
    if "*" in origins:
        return "*"
    origin = request.headers.get("origin")
    if isinstance(origin, str) and origin in origins:
        return origin
    return origins[0] if origins else "*"


def preflight_response(request: Request) -> Response:
    return Response(
        status_code=200,
        headers={
            "access-control-allow-origin": _allow_origin(request),
            "access-control-allow-methods": PREFLIGHT_METHODS,
            "access-control-allow-headers": PREFLIGHT_HEADERS,
            "access-control-max-age": "600",
        },
    )


async def request_limits_middleware(request: Request, call_next: Any) -> Response:
    path = str(getattr(request.url, "path", "") or "")
    method = str(getattr(request, "method", "") or "").upper()

    if method == "OPTIONS":
        return preflight_response(request)

    if path.startswith("/predictions") and method in {"POST", "PUT"}:
        if not _is_json_content_type(request):
            return JSONResponse(status_code=415, content={"error": "unsupported_media_type", "message": "Expected application/json"})

        max_b = _max_body_bytes()
        cl = request.headers.get("content-length")
        try:
            n = int(cl) if isinstance(cl, str) else None
        except ValueError:
            n = None
        if isinstance(n, int) and n > max_b:
            return JSONResponse(status_code=413, content={"error": "payload_too_large", "max_bytes": int(max_b)})
        body = await request.body()
        if len(body) > max_b:
            return JSONResponse(status_code=413, content={"error": "payload_too_large", "max_bytes": int(max_b)})

    resp = await call_next(request)
    resp.headers["x-content-type-options"] = "nosniff"
    return resp
