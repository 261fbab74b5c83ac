"""Configuration and environment validation.

All runtime knobs live here so the router, the tools and the CLI read their
limits and paths from one place.

How this module is designed:
1. `Settings` loads values from environment variables and an optional `.env`.
2. `validate_env()` explicitly checks the variables a workflow needs.
3. Required checks stay out of import-time so `pytest` runs without any
   model credentials.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Credentials are optional at load time. The CLI calls `validate_env()`
    before accepting the first question, which is the only place a missing
    key is fatal.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = Field(default=False, alias="DEBUG")

    groq_api_key: str | None = Field(default=None, alias="GROQ_API_KEY")
    groq_model: str = Field(default="llama-3.1-8b-instant", alias="GROQ_MODEL")
    groq_temperature: float = Field(default=0.2, alias="GROQ_TEMPERATURE")

    docs_dir: Path = Field(default=Path("data/documents"), alias="DOCS_DIR")
    db_dir: Path = Field(default=Path("data/sqlite"), alias="DB_DIR")

    doc_max_chars: int = Field(default=1800, alias="DOC_MAX_CHARS")
    doc_max_lines: int = Field(default=20, alias="DOC_MAX_LINES")
    sql_row_limit: int = Field(default=20, alias="SQL_ROW_LIMIT")
    command_max_buffer: int = Field(default=1024 * 1024, alias="COMMAND_MAX_BUFFER")
    command_max_chars: int = Field(default=4000, alias="COMMAND_MAX_CHARS")

    exit_token: str = Field(default="sair", alias="EXIT_TOKEN")

    langsmith_api_key: str | None = Field(default=None, alias="LANGSMITH_API_KEY")
    langsmith_project: str = Field(default="multisource-agent", alias="LANGSMITH_PROJECT")
    langchain_tracing_v2: bool = Field(default=True, alias="LANGCHAIN_TRACING_V2")


settings = Settings()


def validate_env(required_vars: Iterable[str]) -> None:
    """Fail fast if required environment variables are missing.

    Parameters
    ----------
    required_vars:
        Variable names (for example `GROQ_API_KEY`) that must be present and
        non-empty before the agent accepts questions.

    Raises
    ------
    RuntimeError
        If one or more required variables are missing.
    """

    missing: list[str] = []
    for var_name in required_vars:
        attr_name = var_name.lower()
        if hasattr(settings, attr_name):
            value = getattr(settings, attr_name)
        else:
            value = os.getenv(var_name)

        if value is None or (isinstance(value, str) and value.strip() == ""):
            missing.append(var_name)

    if missing:
        raise RuntimeError(
            "Missing required environment variables: "
            + ", ".join(sorted(missing))
            + ". Export them or add them to a .env file."
        )
