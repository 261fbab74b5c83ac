"""Command tool: model-proposed `curl` fetches behind an approval gate.

A command runs only after it matched the curl grammar in `safety` and a human
approved it. It is executed without a shell (arguments split with `shlex`) and
its output is read through a bounded buffer.
"""

from __future__ import annotations

import shlex
import subprocess
import tempfile

from langchain_core.prompts import ChatPromptTemplate
from langsmith import traceable

from msagent.config import settings
from msagent.tools.approval import ApprovalProvider
from msagent.tools.prompts import CURL_SYSTEM_PROMPT, CURL_USER_TEMPLATE
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

_CURL_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", CURL_SYSTEM_PROMPT),
        ("user", CURL_USER_TEMPLATE),
    ]
)


@traceable(name="propose_command", run_type="llm")
def propose_command(question: str, llm: CompletionService) -> ProposedAction:
    """Ask the completion service for a single `curl -s ... URL` command."""

    messages = _CURL_PROMPT.format_messages(question=question)
    raw = llm.complete(messages)
    return ProposedAction(kind="command", text=strip_code_fence(raw))


def run_command(
    action: ExecutableAction,
    *,
    max_buffer: int = settings.command_max_buffer,
    max_chars: int = settings.command_max_chars,
) -> ExecutionResult:
    """Run an admitted command and capture stdout, or stderr when stdout is empty.

    More than `max_buffer` bytes on stdout kills the process and is reported as
    an error, as is a non-zero exit status. stderr is spooled to a temporary
    file so a chatty child cannot block on a full pipe while stdout is read.
    """

    argv = shlex.split(action.text)
    try:
        with tempfile.TemporaryFile() as err_file:
            with subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=err_file) as proc:
                stdout = proc.stdout.read(max_buffer + 1) if proc.stdout else b""
                if len(stdout) > max_buffer:
                    proc.kill()
                    proc.wait()
                    return ExecutionResult(ok=False, error=f"output exceeded {max_buffer} bytes")
                returncode = proc.wait()
            err_file.seek(0)
            stderr = err_file.read(max_buffer)
    except OSError as exc:
        return ExecutionResult(ok=False, error=f"{type(exc).__name__}: {exc}")

    out_text = stdout.decode("utf-8", errors="replace")
    err_text = stderr.decode("utf-8", errors="replace")

    if returncode != 0:
        detail = (err_text or out_text).strip()
        return ExecutionResult(ok=False, error=f"command failed with exit status {returncode}: {detail}"[:max_chars])

    return ExecutionResult(ok=True, output=(out_text or err_text)[:max_chars])


@traceable(name="fetch_with_approval", run_type="tool")
def fetch_with_approval(
    question: str,
    llm: CompletionService,
    approval: ApprovalProvider,
    *,
    max_buffer: int = settings.command_max_buffer,
    max_chars: int = settings.command_max_chars,
) -> ToolOutcome:
    """Propose, admit, approve and run a fetch command; always one `bash` fragment."""

    try:
        proposal = propose_command(question, llm)
    except Exception as exc:
        logger.error("Command generation failed", extra={"context": {"error": str(exc)}})
        return ToolOutcome(
            fragments=[ContextFragment(source="bash", text=f"ERROR generating command: {exc}")],
            steps=["bash(error)"],
        )

    try:
        action = admit(proposal)
    except ActionRejected as exc:
        logger.warning("Command rejected", extra={"context": {"cmd": proposal.text, "reason": exc.reason}})
        return ToolOutcome(
            fragments=[ContextFragment(source="bash", text=f"Unsafe or invalid command: {proposal.text}")],
            steps=["bash(rejected)"],
        )

    if not approval.approve(action):
        logger.info("Command declined by operator", extra={"context": {"cmd": action.text}})
        return ToolOutcome(
            fragments=[ContextFragment(source="bash", text="Execution cancelled by the user.")],
            steps=["bash(cancel)"],
        )

    result = run_command(action, max_buffer=max_buffer, max_chars=max_chars)
    output = result.output if result.ok else f"ERROR: {result.error}"
    logger.info("Command executed", extra={"context": {"cmd": action.text, "ok": result.ok}})
    return ToolOutcome(
        fragments=[ContextFragment(source="bash", text=f"CMD: {action.text}\nOUTPUT:\n{output}")],
        steps=["bash(ok)" if result.ok else "bash(error)"],
    )
