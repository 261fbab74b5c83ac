"""Human-in-the-loop approval for externally visible actions."""

from __future__ import annotations

from typing import Callable, Protocol

from msagent.tools.safety import ExecutableAction


class ApprovalProvider(Protocol):
    """Decide whether an admitted action may run."""

    def approve(self, action: ExecutableAction) -> bool:
        ...


class ConsoleApproval:
    """Show the plan and block until the operator answers yes or no.

    Anything other than `y` / `yes` counts as a decline, including a closed
    input stream.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ) -> None:
        self.input_fn = input_fn
        self.output_fn = output_fn

    def approve(self, action: ExecutableAction) -> bool:
        self.output_fn(f"\nPlan (bash): {action.text}")
        try:
            answer = self.input_fn("Authorize execution? [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}


class StaticApproval:
    """Fixed answer, for unattended runs and tests. Records what it was shown."""

    def __init__(self, approved: bool) -> None:
        self.approved = approved
        self.seen: list[ExecutableAction] = []

    def approve(self, action: ExecutableAction) -> bool:
        self.seen.append(action)
        return self.approved
