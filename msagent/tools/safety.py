"""Admission checks for model-generated SQL and shell commands.

These are pattern checks, not parsers. A query only has to start with
`select`; a command has to match the curl grammar below exactly. Anything that
fails raises `ActionRejected` and never reaches an executor, because executors
only accept `ExecutableAction` values produced here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

ActionKind = Literal["sql", "command"]

_SELECT_PREFIX_RE = re.compile(r"^\s*select", re.IGNORECASE)

# curl -s, then any of: -L | -H '...' | -H "..." | --header '...' | --header "...",
# then exactly one http(s) URL. Clauses are separated by spaces or tabs only and
# quoted header values may not span lines.
_CURL_RE = re.compile(
    r"curl[ \t]+-s"
    r"(?:[ \t]+-L"
    r"|[ \t]+-H[ \t]+'[^'\r\n]+'"
    r'|[ \t]+-H[ \t]+"[^"\r\n]+"'
    r"|[ \t]+--header[ \t]+'[^'\r\n]+'"
    r'|[ \t]+--header[ \t]+"[^"\r\n]+")*'
    r"[ \t]+(?i:https?)://[^\s;|<>`()'\"\\]+"
)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class ActionRejected(ValueError):
    """Raised when generated text fails its admission check."""

    def __init__(self, action: "ProposedAction", reason: str) -> None:
        super().__init__(f"{action.kind} rejected: {reason}")
        self.action = action
        self.reason = reason


@dataclass(frozen=True)
class ProposedAction:
    """Untrusted query or command text returned by the completion service."""

    kind: ActionKind
    text: str


@dataclass(frozen=True)
class ExecutableAction:
    """A proposed action that passed its admission check."""

    kind: ActionKind
    text: str


def strip_code_fence(text: str) -> str:
    """Drop a surrounding markdown code fence, if the model added one."""

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_RE.sub("", cleaned).strip()
    return cleaned


def is_safe_select(sql: str) -> bool:
    return bool(_SELECT_PREFIX_RE.match(sql))


def is_safe_curl(command: str) -> bool:
    return _CURL_RE.fullmatch(command.strip()) is not None


def admit(action: ProposedAction) -> ExecutableAction:
    """Promote a proposed action to an executable one or raise `ActionRejected`."""

    if not action.text.strip():
        raise ActionRejected(action, "empty text")

    if action.kind == "sql":
        if not is_safe_select(action.text):
            raise ActionRejected(action, "query does not start with SELECT")
    elif action.kind == "command":
        if not is_safe_curl(action.text):
            raise ActionRejected(action, "command does not match the allowed curl grammar")
    else:
        raise ActionRejected(action, f"unknown action kind {action.kind!r}")

    return ExecutableAction(kind=action.kind, text=action.text.strip())
