"""txgraph configuration via environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Graph store ---
    GRAPH_BACKEND: Literal["memory", "neo4j"] = "memory"

    # --- Neo4j ---
    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASS: str = ""
    NEO4J_DATABASE: str = ""
    NEO4J_CONNECT_TIMEOUT: float = 5.0

    # --- Memory backend ---
    SNAPSHOT_PATH: str = ""

    # --- Logging ---
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("NEO4J_URI", mode="before")
    @classmethod
    def _default_scheme(cls, v: str) -> str:
        if v and "://" not in v:
            return f"bolt://{v}"
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


settings = Settings()
