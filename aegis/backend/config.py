"""
backend/config.py

Application configuration via Pydantic Settings.
All values can be overridden with environment variables or a .env file.

Quick start — create a .env file in your project root:
    BATCH_SIZE=8
    BUFFER_CAPACITY=100
    AUTO_SCAN_INTERVAL_SECONDS=5
    OLLAMA_URL=http://localhost:11434
    OLLAMA_MODEL=phi3:3.8b
"""

from __future__ import annotations

import json
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Stream
    BATCH_SIZE: int = 8
    BUFFER_CAPACITY: int = 100
    ATTACK_PROBABILITY: float = 0.2
    RANDOM_SEED: int | None = None

    # 0 disables the periodic scan loop; scans are then API-triggered only
    AUTO_SCAN_INTERVAL_SECONDS: float = 0.0

    # Enrichment / Ollama
    ENRICHMENT_ENABLED: bool = True
    OLLAMA_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "phi3:3.8b"
    ENRICHMENT_TIMEOUT_SECONDS: float = 8.0
    ENRICHMENT_MAX_CALLS_PER_MINUTE: int = 10

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("BATCH_SIZE", "BUFFER_CAPACITY")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("ATTACK_PROBABILITY")
    @classmethod
    def probability(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("must be within [0, 1]")
        return v

    @field_validator("AUTO_SCAN_INTERVAL_SECONDS", "ENRICHMENT_TIMEOUT_SECONDS")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_origins(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


settings = Settings()
