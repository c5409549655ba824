import json
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FIXTURECAST_", env_file=".env", extra="ignore")

    app_name: str = "FixtureCast Prediction Engine API"
    prediction_api_key: str | None = None
    cors_allow_origins: Annotated[list[str], NoDecode] = ["*"]
    cors_allow_origin_regex: str | None = None

    kv_backend: str = "sqlite"
    kv_db_path: str = "data/predictions_kv.sqlite"

    model_version: str = "1.0.0"
    pre_kickoff_ttl_min: int = 90
    max_staleness_min: int = 1440
    generation_timeout_seconds: float = 60.0

    api_football_key: str | None = None
    api_football_base_url: str = "https://v3.football.api-sports.io"
    generator_url: str | None = None
    generator_api_key: str | None = None

    max_json_body_bytes: int = 131072
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("kv_backend", mode="before")
    @classmethod
    def _normalize_kv_backend(cls, v: object) -> object:
        if v is None:
            return ""
        return str(v).strip().lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: object) -> object:
        if v is None:
            return "INFO"
        return str(v).strip().upper() or "INFO"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _parse_cors_allow_origins(cls, v: object) -> object:
        if v is None:
            return v
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            try:
                parsed = json.loads(s)
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
                if isinstance(parsed, str):
                    s = parsed.strip()
            except ValueError:
                pass
            parts = [p.strip() for p in s.split(",")]
            return [p for p in parts if p]
        return v


settings = Settings()
