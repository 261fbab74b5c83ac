"""State schema for the routing graph."""

from __future__ import annotations

import operator
from enum import Enum
from typing import Annotated, TypedDict

from msagent.tools.schemas import ContextFragment


class Route(str, Enum):
    """Closed set of sources a question can be routed to."""

    DOCUMENTS = "documents"
    SQLITE = "sqlite"
    BASH = "bash"
    COMBINE = "combine"


class AgentState(TypedDict, total=False):
    """State for a single question; `context` and `steps` are append-only."""

    question: str
    route: Route
    context: Annotated[list[ContextFragment], operator.add]
    steps: Annotated[list[str], operator.add]
    final: str


def new_state(question: str) -> AgentState:
    return {"question": question, "context": [], "steps": []}
