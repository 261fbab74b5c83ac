"""End-to-end runs of the compiled graph with deterministic collaborators."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from msagent.graph.graph import build_graph, interactive_loop, run_question
from msagent.graph.nodes import FALLBACK_ANSWER
from msagent.graph.state import Route
from msagent.tools import bash as bash_tool
from msagent.tools.approval import StaticApproval

AVG_PRICE_SQL = (
    "select g.Name, AVG(t.UnitPrice) AS media FROM tracks t "
    "JOIN genres g ON g.GenreId = t.GenreId GROUP BY g.Name LIMIT 20"
)


@pytest.fixture
def no_process(monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom(*_args: Any, **_kwargs: Any) -> Any:
        raise AssertionError("an external process was started")

    monkeypatch.setattr(bash_tool.subprocess, "Popen", _boom)


def test_documents_scenario(docs_dir: Path, tmp_path: Path, scripted_llm: Any) -> None:
    llm = scripted_llm(["A Teoria Geral do Emprego, do Juro e da Moeda [docs]."])
    app = build_graph(llm, StaticApproval(approved=False), docs_dir=docs_dir, db_dir=tmp_path / "none")

    result = run_question(app, "Qual o livro de Keynes sobre emprego?")

    assert result["route"] == Route.DOCUMENTS
    assert result["steps"] == ["route=documents", "docs(ok)", "answer"]
    assert [fragment.source for fragment in result["context"]] == ["docs"]
    assert "Keynes publicou a Teoria Geral do Emprego" in result["context"][0].text
    assert result["final"] == "A Teoria Geral do Emprego, do Juro e da Moeda [docs]."


def test_sqlite_scenario(music_db_dir: Path, docs_dir: Path, scripted_llm: Any) -> None:
    llm = scripted_llm([AVG_PRICE_SQL, "Rock lidera [sqlite]."])
    app = build_graph(llm, StaticApproval(approved=False), docs_dir=docs_dir, db_dir=music_db_dir)

    result = run_question(app, "Qual o faturamento médio por gênero musical?")

    assert result["route"] == Route.SQLITE
    assert result["steps"] == ["route=sqlite", "sql(ok)", "answer"]
    text = result["context"][0].text
    sql_line = text.splitlines()[1]
    assert sql_line.removeprefix("SQL: ").lower().startswith("select")
    rows = json.loads(text.split("RESULT:\n", 1)[1])
    assert 0 < len(rows) <= 20
    assert result["final"]


def test_bash_scenario_declined(no_process: None, docs_dir: Path, tmp_path: Path, scripted_llm: Any) -> None:
    approval = StaticApproval(approved=False)
    llm = scripted_llm(["curl -s http://example.com", "A execução foi cancelada [bash]."])
    app = build_graph(llm, approval, docs_dir=docs_dir, db_dir=tmp_path / "none")

    result = run_question(app, "Baixe o conteúdo de http://example.com")

    assert result["route"] == Route.BASH
    assert result["steps"] == ["route=bash", "bash(cancel)", "answer"]
    assert [action.text for action in approval.seen] == ["curl -s http://example.com"]
    fragment = result["context"][0]
    assert fragment.text == "Execution cancelled by the user."
    assert "OUTPUT" not in fragment.text
    assert result["final"]


def test_combine_keeps_sqlite_before_docs(music_db_dir: Path, docs_dir: Path, scripted_llm: Any) -> None:
    """Combine runs the database first and records a single step."""

    llm = scripted_llm(["SELECT Name FROM tracks LIMIT 3", "Resposta combinada."])
    app = build_graph(llm, StaticApproval(approved=False), docs_dir=docs_dir, db_dir=music_db_dir)

    result = run_question(app, "Qual o preço do livro?")

    assert result["route"] == Route.COMBINE
    assert result["steps"] == ["route=combine", "combine", "answer"]
    assert [fragment.source for fragment in result["context"]] == ["sqlite", "docs"]


def test_answer_prompt_carries_tagged_evidence(docs_dir: Path, tmp_path: Path, scripted_llm: Any) -> None:
    llm = scripted_llm([])
    app = build_graph(llm, StaticApproval(approved=False), docs_dir=docs_dir, db_dir=tmp_path / "none")

    run_question(app, "Keynes")

    user_message = str(llm.calls[-1][-1].content)
    assert "Question: Keynes" in user_message
    assert "[docs] (economia.txt) Keynes publicou" in user_message


class _FailingAnswer:
    """Completion service that answers the first prompts and fails on the last."""

    def __init__(self, replies: list[str]) -> None:
        self.replies = replies

    def complete(self, messages: Any) -> str:
        if self.replies:
            return self.replies.pop(0)
        raise RuntimeError("completion service down")


@pytest.mark.parametrize(
    ("question", "replies", "approved", "expected_step"),
    [
        ("Qual o faturamento por artista?", ["DELETE FROM tracks", ""], False, "sql(rejected)"),
        ("Qual o faturamento por artista?", ["SELECT * FROM nowhere", ""], False, "sql(error)"),
        ("fetch the site", ["wget http://example.com", ""], True, "bash(rejected)"),
        ("fetch the site", ["curl -s http://example.com", ""], False, "bash(cancel)"),
        ("Qual o livro de Keynes?", [""], False, "docs(ok)"),
    ],
)
def test_final_is_never_empty(
    no_process: None,
    music_db_dir: Path,
    docs_dir: Path,
    scripted_llm: Any,
    question: str,
    replies: list[str],
    approved: bool,
    expected_step: str,
) -> None:
    """Rejections, errors and cancellations still reach the answer node."""

    llm = scripted_llm(replies)
    app = build_graph(llm, StaticApproval(approved=approved), docs_dir=docs_dir, db_dir=music_db_dir)

    result = run_question(app, question)

    assert expected_step in result["steps"]
    assert result["steps"][-1] == "answer"
    assert result["final"] == FALLBACK_ANSWER


def test_answer_service_failure_uses_fallback(docs_dir: Path, tmp_path: Path) -> None:
    app = build_graph(_FailingAnswer([]), StaticApproval(approved=False), docs_dir=docs_dir, db_dir=tmp_path)

    result = run_question(app, "Keynes")

    assert result["final"] == FALLBACK_ANSWER


def test_state_is_fresh_per_question(docs_dir: Path, tmp_path: Path, scripted_llm: Any) -> None:
    app = build_graph(scripted_llm([]), StaticApproval(approved=False), docs_dir=docs_dir, db_dir=tmp_path)

    run_question(app, "Keynes")
    second = run_question(app, "Smith")

    assert len(second["context"]) == 1
    assert second["steps"] == ["route=documents", "docs(ok)", "answer"]


def test_interactive_loop_stops_on_exit_token(docs_dir: Path, tmp_path: Path, scripted_llm: Any) -> None:
    app = build_graph(scripted_llm(["Resposta."]), StaticApproval(approved=False), docs_dir=docs_dir, db_dir=tmp_path)
    questions = iter(["Qual o livro de Keynes?", "SAIR", "never asked"])
    printed: list[str] = []

    answered = interactive_loop(app, exit_token="sair", input_fn=lambda _prompt: next(questions), output_fn=printed.append)

    assert answered == 1
    assert printed == ["\nAgent:\nResposta.\n"]


def test_non_utf8_document_still_reaches_answer(docs_dir: Path, tmp_path: Path, scripted_llm: Any) -> None:
    (docs_dir / "latin1.txt").write_bytes("Keynes emprego ação".encode("latin-1"))
    app = build_graph(scripted_llm(["Resposta [docs]."]), StaticApproval(approved=False), docs_dir=docs_dir, db_dir=tmp_path)

    result = run_question(app, "Qual o livro de Keynes?")

    assert result["steps"] == ["route=documents", "docs(ok)", "answer"]
    assert "(latin1.txt) Keynes emprego" in result["context"][0].text
    assert result["final"] == "Resposta [docs]."
