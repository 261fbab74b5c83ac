"""Term-overlap search over a directory of plain-text documents.

Scoring:
- The question is split on non-word characters into distinct lower-case terms.
- Each line scores the number of terms that occur inside it as substrings.
- Lines are ranked by score with a stable sort, so ties keep corpus order
  (file names in lexical order, then line order inside each file).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from langsmith import traceable

from msagent.config import settings
from msagent.tools.schemas import ContextFragment, ToolOutcome
from msagent.utils.logging import get_logger

logger = get_logger(__name__)

_TERM_SPLIT_RE = re.compile(r"\W+")


@dataclass
class ScoredLine:
    """One corpus line that shares at least one term with the question."""

    file: str
    line: str
    score: int


def load_corpus(docs_dir: Path) -> dict[str, str]:
    """Read every `*.txt` file directly under `docs_dir`, keyed by file name."""

    if not docs_dir.is_dir():
        logger.warning("Documents directory missing", extra={"context": {"docs_dir": str(docs_dir)}})
        return {}

    corpus: dict[str, str] = {}
    for path in sorted(docs_dir.glob("*.txt")):
        if not path.is_file():
            continue
        try:
            # Undecodable bytes become U+FFFD instead of failing the run.
            corpus[path.name] = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning(
                "Skipping unreadable document",
                extra={"context": {"file": path.name, "error": str(exc)}},
            )

    logger.debug("Corpus loaded", extra={"context": {"docs_dir": str(docs_dir), "files": len(corpus)}})
    return corpus


def question_terms(question: str) -> list[str]:
    """Split a question into distinct lower-case terms, keeping first-seen order."""

    terms = [term for term in _TERM_SPLIT_RE.split(question.lower()) if term]
    return list(dict.fromkeys(terms))


def score_lines(question: str, corpus: dict[str, str]) -> list[ScoredLine]:
    terms = question_terms(question)
    scored: list[ScoredLine] = []

    for file_name in sorted(corpus):
        for line in corpus[file_name].splitlines():
            lowered = line.lower()
            score = sum(1 for term in terms if term in lowered)
            if score > 0:
                scored.append(ScoredLine(file=file_name, line=line, score=score))

    # sorted() is stable: equal scores keep corpus order.
    return sorted(scored, key=lambda item: item.score, reverse=True)


def build_snippet(
    question: str,
    corpus: dict[str, str],
    *,
    max_lines: int = settings.doc_max_lines,
    max_chars: int = settings.doc_max_chars,
) -> str:
    """Render the best matching lines as `(file) line`, capped at `max_chars`."""

    top = score_lines(question, corpus)[:max_lines]
    snippet = "\n".join(f"({item.file}) {item.line}" for item in top)
    return snippet[:max_chars]


def search_corpus(
    question: str,
    corpus: dict[str, str],
    *,
    max_lines: int = settings.doc_max_lines,
    max_chars: int = settings.doc_max_chars,
    location: str = "the corpus",
) -> ToolOutcome:
    """Search an in-memory corpus and return exactly one `docs` fragment."""

    if not corpus:
        return ToolOutcome(
            fragments=[ContextFragment(source="docs", text=f"No .txt documents found in {location}")],
            steps=["docs(empty)"],
        )

    snippet = build_snippet(question, corpus, max_lines=max_lines, max_chars=max_chars)
    if not snippet:
        snippet = "No document line matched the question terms."

    logger.info(
        "Document search completed",
        extra={"context": {"files": len(corpus), "chars": len(snippet)}},
    )
    return ToolOutcome(
        fragments=[ContextFragment(source="docs", text=snippet)],
        steps=["docs(ok)"],
    )


@traceable(name="search_documents", run_type="retriever")
def search_documents(
    question: str,
    docs_dir: Path,
    *,
    max_lines: int = settings.doc_max_lines,
    max_chars: int = settings.doc_max_chars,
) -> ToolOutcome:
    """Load the corpus under `docs_dir` and search it."""

    corpus = load_corpus(docs_dir)
    return search_corpus(
        question,
        corpus,
        max_lines=max_lines,
        max_chars=max_chars,
        location=str(docs_dir),
    )
