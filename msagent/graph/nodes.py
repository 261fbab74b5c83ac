"""LangGraph node implementations for multi-source routing.

Routes:
- `documents`: term-overlap search over the text corpus
- `sqlite`: generated, admitted and read-only executed SQL
- `bash`: generated curl command behind the approval gate
- `combine`: `sqlite` then `documents`, evidence kept in that order

Every tool node returns only the keys it appends to (`context`, `steps`); the
answer node is the only writer of `final`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from langchain_core.prompts import ChatPromptTemplate

from msagent.config import settings
from msagent.graph.routing import heuristic_route
from msagent.graph.state import AgentState, Route
from msagent.tools.approval import ApprovalProvider
from msagent.tools.bash import fetch_with_approval
from msagent.tools.documents import search_documents
from msagent.tools.prompts import ANSWER_SYSTEM_PROMPT, ANSWER_USER_TEMPLATE
from msagent.tools.schemas import ToolOutcome
from msagent.tools.sqlite import query_database
from msagent.utils.llm import CompletionService
from msagent.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_ANSWER = "I could not synthesize an answer from the gathered evidence."

_ANSWER_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", ANSWER_SYSTEM_PROMPT),
        ("user", ANSWER_USER_TEMPLATE),
    ]
)

NodeHandler = Callable[[AgentState], dict[str, Any]]


def _as_update(outcome: ToolOutcome) -> dict[str, Any]:
    return {"context": list(outcome.fragments), "steps": list(outcome.steps)}


class AgentNodes:
    """Node handlers bound to their collaborators.

    The completion service and the approval provider are passed in rather than
    looked up globally, so tests can swap in deterministic fakes.
    """

    def __init__(
        self,
        llm: CompletionService,
        approval: ApprovalProvider,
        *,
        docs_dir: Path | None = None,
        db_dir: Path | None = None,
    ) -> None:
        self.llm = llm
        self.approval = approval
        self.docs_dir = docs_dir or settings.docs_dir
        self.db_dir = db_dir or settings.db_dir

    def router(self, state: AgentState) -> dict[str, Any]:
        """Choose the route for the current question."""

        route = heuristic_route(state.get("question", ""))
        logger.info("Router decision", extra={"context": {"route": route.value}})
        return {"route": route, "steps": [f"route={route.value}"]}

    def documents(self, state: AgentState) -> dict[str, Any]:
        outcome = search_documents(state.get("question", ""), self.docs_dir)
        return _as_update(outcome)

    def sqlite(self, state: AgentState) -> dict[str, Any]:
        outcome = query_database(state.get("question", ""), self.db_dir, self.llm)
        return _as_update(outcome)

    def bash(self, state: AgentState) -> dict[str, Any]:
        outcome = fetch_with_approval(state.get("question", ""), self.llm, self.approval)
        return _as_update(outcome)

    def combine(self, state: AgentState) -> dict[str, Any]:
        """Run the relational tool, then the document search, one after the other.

        Only a single `combine` step is recorded; the sub-tool step tags are
        dropped.
        """

        question = state.get("question", "")
        from_db = query_database(question, self.db_dir, self.llm)
        from_docs = search_documents(question, self.docs_dir)
        logger.info(
            "Combine completed",
            extra={"context": {"sqlite_steps": from_db.steps, "docs_steps": from_docs.steps}},
        )
        return {"context": [*from_db.fragments, *from_docs.fragments], "steps": ["combine"]}

    def answer(self, state: AgentState) -> dict[str, Any]:
        """Synthesize the final answer from every fragment gathered so far."""

        question = state.get("question", "")
        evidence = "\n\n".join(fragment.render() for fragment in state.get("context", []))

        try:
            messages = _ANSWER_PROMPT.format_messages(question=question, context=evidence)
            final = self.llm.complete(messages).strip()
        except Exception as exc:
            logger.error("Answer node failed", extra={"context": {"error": str(exc)}})
            final = ""

        if not final:
            final = FALLBACK_ANSWER

        logger.info("Answer node completed", extra={"context": {"chars": len(final)}})
        return {"final": final, "steps": ["answer"]}

    def route_handlers(self) -> dict[Route, NodeHandler]:
        """Lookup table from route to the node that serves it."""

        return {
            Route.DOCUMENTS: self.documents,
            Route.SQLITE: self.sqlite,
            Route.BASH: self.bash,
            Route.COMBINE: self.combine,
        }
