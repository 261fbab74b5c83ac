"""Completion service used by every tool and by the answer node.

The graph never talks to a chat model directly. It receives a
`CompletionService`: role-tagged messages in, plain text out. Production wires
in a Groq chat model; tests pass a scripted fake.
"""

from __future__ import annotations

import os
from typing import Any, Protocol, Sequence

from langchain_core.messages import BaseMessage
from langchain_core.output_parsers import StrOutputParser

from msagent.config import settings, validate_env


class CompletionService(Protocol):
    """Turn a role-tagged message sequence into response text."""

    def complete(self, messages: Sequence[BaseMessage]) -> str:
        ...


class ChatModelCompletionService:
    """Adapter from a LangChain chat model to `CompletionService`."""

    def __init__(self, model: Any) -> None:
        self.model = model
        self._chain = model | StrOutputParser()

    def complete(self, messages: Sequence[BaseMessage]) -> str:
        return str(self._chain.invoke(list(messages))).strip()


def get_groq_chat_model() -> Any:
    """Return a Groq chat model configured from environment settings.

    Raises
    ------
    RuntimeError
        If required Groq env vars are missing or the package is not installed.
    """

    validate_env(["GROQ_API_KEY", "GROQ_MODEL"])

    try:
        from langchain_groq import ChatGroq  # type: ignore
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "langchain-groq is not installed. Add `langchain-groq` to dependencies."
        ) from exc

    # The provider SDK reads the key from the environment.
    os.environ["GROQ_API_KEY"] = settings.groq_api_key or ""

    return ChatGroq(
        model=settings.groq_model,
        temperature=settings.groq_temperature,
    )


def get_completion_service() -> CompletionService:
    """Build the production completion service; fails before any question is read."""

    return ChatModelCompletionService(get_groq_chat_model())
