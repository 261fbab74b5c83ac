"""Relational query tool over local SQLite stores.

Flow: pick the first store, read its schema, ask the completion service for a
query, admit it through `safety.admit`, run it on a read-only connection.
Every failure becomes a `sqlite` fragment; nothing here raises to the graph.

Only the lexically first `*.db` file of the store directory is consulted.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from pathlib import Path

from langchain_core.prompts import ChatPromptTemplate
from langsmith import traceable

from msagent.config import settings
from msagent.tools.prompts import SQL_SYSTEM_PROMPT, SQL_USER_TEMPLATE
from msagent.tools.safety import (
    ActionRejected,
    ExecutableAction,
    ProposedAction,
    admit,
    strip_code_fence,
)
from msagent.tools.schemas import ContextFragment, ExecutionResult, ToolOutcome
from msagent.utils.llm import CompletionService
from msagent.utils.logging import get_logger

logger = get_logger(__name__)

_SQL_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", SQL_SYSTEM_PROMPT),
        ("user", SQL_USER_TEMPLATE),
    ]
)


def find_db_files(db_dir: Path) -> list[Path]:
    """Return `*.db` files directly under `db_dir`, in lexical order."""

    if not db_dir.is_dir():
        return []
    return sorted(path for path in db_dir.glob("*.db") if path.is_file())


def connect_readonly(db_path: Path) -> sqlite3.Connection:
    """Open `db_path` read-only; writes fail at the engine level."""

    uri = f"{db_path.resolve().as_uri()}?mode=ro"
    conn = sqlite3.connect(uri, uri=True)
    conn.row_factory = sqlite3.Row
    return conn


def read_schema(db_path: Path) -> str:
    """Return every table definition as `-- name` followed by its CREATE statement."""

    with closing(connect_readonly(db_path)) as conn:
        rows = conn.execute(
            "SELECT name, sql FROM sqlite_master WHERE type = 'table' ORDER BY name"
        ).fetchall()

    return "\n\n".join(f"-- {row['name']}\n{row['sql']}" for row in rows)


@traceable(name="propose_sql", run_type="llm")
def propose_sql(
    question: str,
    schema: str,
    llm: CompletionService,
    *,
    row_limit: int = settings.sql_row_limit,
) -> ProposedAction:
    """Ask the completion service for one read-only query."""

    messages = _SQL_PROMPT.format_messages(question=question, schema=schema, row_limit=row_limit)
    raw = llm.complete(messages)
    return ProposedAction(kind="sql", text=strip_code_fence(raw))


def run_sql(db_path: Path, action: ExecutableAction, *, row_limit: int = settings.sql_row_limit) -> ExecutionResult:
    """Execute an admitted query; the connection is closed on every exit path."""

    try:
        with closing(connect_readonly(db_path)) as conn:
            cursor = conn.execute(action.text)
            rows = [dict(row) for row in cursor.fetchmany(row_limit)]
    except (sqlite3.Error, sqlite3.Warning) as exc:
        return ExecutionResult(ok=False, error=f"{type(exc).__name__}: {exc}")

    return ExecutionResult(ok=True, rows=rows)


@traceable(name="query_database", run_type="tool")
def query_database(
    question: str,
    db_dir: Path,
    llm: CompletionService,
    *,
    row_limit: int = settings.sql_row_limit,
) -> ToolOutcome:
    """Run the whole relational flow for `question`; always yields one `sqlite` fragment."""

    db_files = find_db_files(db_dir)
    if not db_files:
        return ToolOutcome(
            fragments=[ContextFragment(source="sqlite", text=f"No .db file found in {db_dir}")],
            steps=["sql(missing)"],
        )

    db_path = db_files[0]
    if len(db_files) > 1:
        logger.debug(
            "Several stores found; using the first",
            extra={"context": {"used": db_path.name, "ignored": [p.name for p in db_files[1:]]}},
        )

    try:
        schema = read_schema(db_path)
    except sqlite3.Error as exc:
        logger.error("Schema read failed", extra={"context": {"db": db_path.name, "error": str(exc)}})
        return ToolOutcome(
            fragments=[ContextFragment(source="sqlite", text=f"ERROR reading schema of {db_path.name}: {exc}")],
            steps=["sql(error)"],
        )

    try:
        proposal = propose_sql(question, schema, llm, row_limit=row_limit)
    except Exception as exc:
        logger.error("Query generation failed", extra={"context": {"error": str(exc)}})
        return ToolOutcome(
            fragments=[ContextFragment(source="sqlite", text=f"ERROR generating query: {exc}")],
            steps=["sql(error)"],
        )

    try:
        action = admit(proposal)
    except ActionRejected as exc:
        logger.warning("Query rejected", extra={"context": {"sql": proposal.text, "reason": exc.reason}})
        return ToolOutcome(
            fragments=[ContextFragment(source="sqlite", text=f"Query rejected: {proposal.text}")],
            steps=["sql(rejected)"],
        )

    result = run_sql(db_path, action, row_limit=row_limit)
    if not result.ok:
        logger.warning("Query failed", extra={"context": {"sql": action.text, "error": result.error}})
        return ToolOutcome(
            fragments=[ContextFragment(source="sqlite", text=f"ERROR: {result.error}\nSQL: {action.text}")],
            steps=["sql(error)"],
        )

    preview = json.dumps(result.rows, indent=2, ensure_ascii=False, default=str)
    logger.info("Query executed", extra={"context": {"db": db_path.name, "rows": len(result.rows)}})
    return ToolOutcome(
        fragments=[
            ContextFragment(
                source="sqlite",
                text=f"DB={db_path.name}\nSQL: {action.text}\nRESULT:\n{preview}",
            )
        ],
        steps=["sql(ok)"],
    )
