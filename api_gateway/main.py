from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api_gateway.app.logging_config import setup_logging
from api_gateway.app.settings import settings
from api_gateway.app.state import build_engine_state
from api_gateway.middleware.request_limits import request_limits_middleware
from api_gateway.routes import predictions
from prediction_engine.errors import EngineError, InternalError


logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_origin_regex=settings.cors_allow_origin_regex,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
)

@app.middleware("http")
async def _request_limits_middleware(request, call_next):
    return await request_limits_middleware(request, call_next)


def _internal_error_response(exc: BaseException) -> JSONResponse:
    error_id = uuid.uuid4().hex
    logger.error("unhandled error %s: %r", error_id, exc, exc_info=exc, extra={"error_id": error_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Internal error", "errorId": error_id},
    )


@app.exception_handler(EngineError)
async def _engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    if isinstance(exc, InternalError):
        return _internal_error_response(exc)
    return JSONResponse(status_code=int(exc.status_code), content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": "Invalid request",
            "details": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
        },
    )


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _internal_error_response(exc)


@app.on_event("startup")
async def _startup() -> None:
    setup_logging(settings.log_level, settings.log_json)
    app.state.engine = build_engine_state(settings)
    if app.state.engine is None:
        logger.error("prediction store is not bound; every prediction route will answer config_error")
    else:
        logger.info("prediction store ready (%s)", app.state.engine.store.kv.name)


@app.on_event("shutdown")
async def _shutdown() -> None:
    engine = getattr(app.state, "engine", None)
    coordinator = getattr(engine, "coordinator", None) if engine is not None else None
    if coordinator is not None:
        await coordinator.close()


app.include_router(predictions.router)
