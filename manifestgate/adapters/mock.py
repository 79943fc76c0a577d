"""
Mock adapter — test double for any tool adapter.

Returns success by default. Responses can be set per action ID, or
computed from the action by a handler callable when a test needs to
inspect stdin or args (e.g. a fake kustomize that echoes a manifest).
"""

from __future__ import annotations

from typing import Callable

from manifestgate.adapters.base import Adapter
from manifestgate.core.models.action import Action, Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "",
        handler: Callable[[Action], Receipt] | None = None,
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._handler = handler
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[Action] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Action]:
        """All actions this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure", output: str = "") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            output=output,
            return_code=1,
        )

    def validate(self, action: Action) -> tuple[bool, str]:
        return True, ""

    def execute(self, action: Action) -> Receipt:
        self._call_log.append(action)

        if action.id in self._responses:
            return self._responses[action.id]

        if self._handler is not None:
            return self._handler(action)

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=self._default_output,
            return_code=0,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and responses."""
        self._call_log.clear()
        self._responses.clear()
