"""Graph construction and CLI for the multi-source agent."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Callable

from msagent.config import settings, validate_env
from msagent.graph.nodes import AgentNodes
from msagent.graph.state import AgentState, Route, new_state
from msagent.tools.approval import ApprovalProvider, ConsoleApproval
from msagent.utils.llm import CompletionService, get_completion_service
from msagent.utils.logging import configure_logging, get_logger
from msagent.utils.tracing import configure_langsmith_tracing

logger = get_logger(__name__)


def _route_key(state: AgentState) -> str:
    """Read route value from state for conditional branching."""

    return Route(state.get("route", Route.DOCUMENTS)).value


def build_graph(
    llm: CompletionService,
    approval: ApprovalProvider,
    *,
    docs_dir: Path | None = None,
    db_dir: Path | None = None,
) -> Any:
    """Build and compile the router -> tool -> answer state machine."""

    try:
        from langgraph.graph import END, START, StateGraph
    except ModuleNotFoundError as exc:
        raise RuntimeError("langgraph is not installed. Add dependency `langgraph`.") from exc

    nodes = AgentNodes(llm, approval, docs_dir=docs_dir, db_dir=db_dir)
    handlers = nodes.route_handlers()

    graph = StateGraph(AgentState)
    graph.add_node("router", nodes.router)
    for route, handler in handlers.items():
        graph.add_node(route.value, handler)
    graph.add_node("answer", nodes.answer)

    graph.add_edge(START, "router")
    graph.add_conditional_edges(
        "router",
        _route_key,
        {route.value: route.value for route in handlers},
    )
    for route in handlers:
        graph.add_edge(route.value, "answer")
    graph.add_edge("answer", END)

    return graph.compile()


def run_question(app: Any, question: str) -> AgentState:
    """Run the compiled graph for one question with a fresh state."""

    result: AgentState = app.invoke(new_state(question))
    logger.info(
        "Graph run completed",
        extra={
            "context": {
                "route": _route_key(result),
                "steps": result.get("steps", []),
                "has_answer": bool(result.get("final")),
            }
        },
    )
    return result


def _serialize(state: AgentState) -> dict[str, Any]:
    return {
        "question": state.get("question", ""),
        "route": _route_key(state),
        "context": [fragment.model_dump() for fragment in state.get("context", [])],
        "steps": state.get("steps", []),
        "final": state.get("final", ""),
    }


def interactive_loop(
    app: Any,
    *,
    exit_token: str = settings.exit_token,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> int:
    """Answer questions until empty input, EOF or the exit token; return the count."""

    answered = 0
    while True:
        try:
            question = input_fn("You: ").strip()
        except EOFError:
            break
        if not question or question.lower() == exit_token.lower():
            break

        result = run_question(app, question)
        output_fn(f"\nAgent:\n{result.get('final', '')}\n")
        answered += 1

    return answered


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Answer questions from documents, SQLite or the web")
    parser.add_argument("--question", type=str, default="")
    parser.add_argument("--docs-dir", type=Path, default=settings.docs_dir)
    parser.add_argument("--db-dir", type=Path, default=settings.db_dir)
    parser.add_argument("--debug", type=int, default=0)
    return parser


def main() -> None:
    args = _build_arg_parser().parse_args()
    configure_logging(debug=bool(args.debug))
    configure_langsmith_tracing()

    # Missing credentials abort here, before any question is read.
    validate_env(["GROQ_API_KEY"])
    llm = get_completion_service()

    app = build_graph(llm, ConsoleApproval(), docs_dir=args.docs_dir, db_dir=args.db_dir)

    if args.question:
        result = run_question(app, args.question)
        print(json.dumps(_serialize(result), indent=2, ensure_ascii=False, default=str))
        return

    print(f"Multi-Source Agent ({settings.groq_model})")
    print(f"Docs: {args.docs_dir}")
    print(f"DBs : {args.db_dir}")
    print(f'Type your question (or "{settings.exit_token}" to quit)\n')
    interactive_loop(app)


if __name__ == "__main__":
    main()
