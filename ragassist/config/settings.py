"""
RAG Assistant - Centralized Configuration
==========================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GEMINI_KEY`` and ``TAVILY_KEY`` are typed as ``SecretStr`` and have
  **no default value**.  If either key is missing (or blank) at startup,
  ``load_settings()`` raises ``ConfigurationError`` naming the field.  The
  raw values are never exposed in repr, logs, or tracebacks.

Explicit configuration
----------------------
There is no module-level settings instance.  Callers build one with
``load_settings()`` and pass it to ``Assistant.create`` /
``create_assistant`` so tests can construct isolated configurations.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ragassist.src.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required**.

    Attributes
    ----------
    GEMINI_KEY : SecretStr
        API key for Google AI Studio (Gemini chat + embeddings).  **Required.**
    TAVILY_KEY : SecretStr
        API key for the Tavily web-search API.  **Required.**
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    CHUNK_SIZE, CHUNK_OVERLAP : int
        Character budget per chunk and overlap between consecutive chunks.
    RETRIEVER_MAX_RESULTS, RETRIEVER_MIN_SCORE
        Result cap and relevance floor of each document retriever.
    WEB_MAX_RESULTS : int
        Result cap of the web-search retriever.
    MEMORY_MAX_MESSAGES : int
        Chat memory capacity (the pinned system message counts).
    DOCUMENT_PATHS : list[Path]
        The documents indexed at startup, one vector table each.
    LANCEDB_PATH : Path | None
        Directory for the per-process vector tables.  ``None`` means a fresh
        temporary directory on every start.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    RESOURCES_DIR: Path = BASE_DIR / "resources"
    DOCUMENT_PATHS: list[Path] = [RESOURCES_DIR / "rag.pdf", RESOURCES_DIR / "RSE.pdf"]
    LANCEDB_PATH: Path | None = None

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (REQUIRED, no default) ───────────────────────────────
    GEMINI_KEY: SecretStr
    TAVILY_KEY: SecretStr

    # ── Chat Model ─────────────────────────────────────────────────────
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_RETRIES: int = 0
    LOG_LLM_TRAFFIC: bool = True

    # ── Embeddings ─────────────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"

    # ── Ingestion Parameters ───────────────────────────────────────────
    CHUNK_SIZE: int = 300
    CHUNK_OVERLAP: int = 30

    # ── Retrieval ──────────────────────────────────────────────────────
    RETRIEVER_MAX_RESULTS: int = 3
    RETRIEVER_MIN_SCORE: float = 0.5
    WEB_MAX_RESULTS: int = 3
    WEB_TIMEOUT_SECONDS: float = 15.0
    TAVILY_URL: str = "https://api.tavily.com/search"

    # ── Chat Memory ────────────────────────────────────────────────────
    MEMORY_MAX_MESSAGES: int = 10

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("GEMINI_KEY", "TAVILY_KEY")
    @classmethod
    def _key_not_blank(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("must not be blank")
        return v


    @field_validator("CHUNK_SIZE")
    @classmethod
    def _chunk_size_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"CHUNK_SIZE must be ≥ 1, got {v}")
        return v


    @field_validator("RETRIEVER_MAX_RESULTS", "WEB_MAX_RESULTS")
    @classmethod
    def _max_results_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max results must be ≥ 1, got {v}")
        return v


    @field_validator("RETRIEVER_MIN_SCORE")
    @classmethod
    def _min_score_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"RETRIEVER_MIN_SCORE must be within 0–1, got {v}")
        return v


    @field_validator("MEMORY_MAX_MESSAGES")
    @classmethod
    def _memory_capacity(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"MEMORY_MAX_MESSAGES must be ≥ 2, got {v}")
        return v


    @field_validator("LLM_TIMEOUT_SECONDS", "WEB_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout must be > 0, got {v}")
        return v


    @model_validator(mode="after")
    def _overlap_below_size(self) -> Settings:
        if not 0 <= self.CHUNK_OVERLAP < self.CHUNK_SIZE:
            raise ValueError(f"CHUNK_OVERLAP must be within 0–{self.CHUNK_SIZE - 1}, got {self.CHUNK_OVERLAP}")
        return self

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


def load_settings(**overrides: object) -> Settings:
    """
    Build a ``Settings`` instance, translating validation failures.

    Keyword arguments override environment values (``_env_file=None``
    disables ``.env`` loading, which the test-suite relies on).

    Raises
    ------
    ConfigurationError
        If a required credential is missing/blank or a value is out of range.
        The message lists the offending fields, never their values.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) or "settings" for err in exc.errors()})
        raise ConfigurationError(f"Invalid or missing configuration: {', '.join(fields)}") from exc
