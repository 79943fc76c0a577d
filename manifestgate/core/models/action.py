"""
Action and Receipt models — the tool execution contract.

Actions describe one invocation of an external tool. Receipts describe
its outcome. Adapters take Actions and return Receipts; they never
raise, so a failed tool run is always data the caller can inspect.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested invocation of an external tool."""

    id: str                         # unique action identifier
    adapter: str                    # which adapter handles this
    args: list[str] = Field(default_factory=list)
    stdin: str | None = None        # text piped to the process
    env: dict[str, str] = Field(default_factory=dict)  # added to os.environ
    cwd: str | None = None
    timeout: int = 300              # seconds


class Receipt(BaseModel):
    """Result of an adapter execution.

    ``output`` is the process stdout, ``error`` the stderr (or a
    synthesized message when the process could not run at all).
    """

    adapter: str
    action_id: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    return_code: int | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )
