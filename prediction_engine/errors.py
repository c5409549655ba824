"""Error taxonomy shared by the engine and the HTTP gateway.

Every error carries a stable ``kind`` tag and the HTTP status the gateway
answers with. ``UpstreamPartialFailure`` is the one kind that never reaches a
caller: the context aggregator recovers it and only lowers the richness score.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    kind = "engine_error"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = str(message)
        self.details = dict(details)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"error": self.kind, "message": self.message}
        out.update(self.details)
        return out


class AuthError(EngineError):
    kind = "auth_error"
    status_code = 401


class ConfigError(EngineError):
    kind = "config_error"
    status_code = 500


class ValidationError(EngineError):
    kind = "validation_error"
    status_code = 400


class NotFoundError(EngineError):
    kind = "not_found"
    status_code = 404


class ConflictError(EngineError):
    kind = "conflict"
    status_code = 409


class AlreadyInProgressError(EngineError):
    kind = "already_in_progress"
    status_code = 409


class GenerationTimeoutError(EngineError):
    kind = "generation_timeout"
    status_code = 504


class UpstreamPartialFailure(EngineError):
    kind = "upstream_partial_failure"
    status_code = 200

    def __init__(self, source: str, cause: BaseException | None = None) -> None:
        super().__init__(f"upstream feed failed: {source}", source=source)
        self.source = source
        self.cause = cause


class InternalError(EngineError):
    kind = "internal_error"
    status_code = 500
