"""Evidence and execution models shared by the tools and the graph."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SourceTag = Literal["docs", "sqlite", "bash"]


class ContextFragment(BaseModel):
    """One immutable piece of source-tagged evidence."""

    model_config = ConfigDict(frozen=True)

    source: SourceTag = Field(description="Source that produced the evidence")
    text: str = Field(description="Evidence text, without the source tag")

    def render(self) -> str:
        return f"[{self.source}] {self.text}"


class ExecutionResult(BaseModel):
    """Outcome of running an admitted query or command."""

    ok: bool
    rows: list[dict[str, Any]] = Field(default_factory=list)
    output: str = Field(default="")
    error: str | None = Field(default=None)


class ToolOutcome(BaseModel):
    """Fragments and audit steps produced by one tool invocation."""

    fragments: list[ContextFragment] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)
