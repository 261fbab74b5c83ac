"""LangSmith tracing setup.

Tool functions are decorated with `langsmith.traceable`; runs are only
exported when tracing is switched on here with a valid API key.
"""

from __future__ import annotations

import os

from msagent.config import settings


def configure_langsmith_tracing() -> bool:
    """Set tracing env flags and return whether tracing is enabled."""

    enabled = bool(settings.langchain_tracing_v2) and bool(settings.langsmith_api_key)
    os.environ["LANGCHAIN_TRACING_V2"] = "true" if enabled else "false"

    if settings.langsmith_project:
        os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project

    if settings.langsmith_api_key:
        os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key

    return enabled
