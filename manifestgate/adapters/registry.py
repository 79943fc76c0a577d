"""
Adapter registry — central dispatch for every external tool call.

The orchestrator and materializer never talk to adapters directly;
they hand Actions to the registry, which resolves the adapter by name,
validates the action, executes it, and always returns a Receipt.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from manifestgate.adapters.base import Adapter
from manifestgate.adapters.shell.command import CommandAdapter
from manifestgate.adapters.vcs.git import GitAdapter
from manifestgate.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)

# Names the pipeline dispatches to
VALIDATOR = "kubeconform"
KUSTOMIZE = "kustomize"
FLUX = "flux"
GIT = "git"


class AdapterRegistry:
    """Central registry and dispatcher for adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        """Register an adapter, replacing any adapter with the same name."""
        name = adapter.name
        if name in self._adapters:
            logger.debug("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter

    def unregister(self, name: str) -> None:
        """Remove an adapter from the registry."""
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        """Look up an adapter by name."""
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Get availability status of all registered adapters."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status

    def execute(self, action: Action) -> Receipt:
        """Execute an action through the adapter named by ``action.adapter``.

        Resolves, validates, executes and times the call. Never raises.
        """
        start_time = time.monotonic()

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        is_valid, error_msg = adapter.validate(action)
        if not is_valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {error_msg}",
            )

        try:
            receipt = adapter.execute(action)
        except Exception as e:
            # Adapters should never raise
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.debug(
            "%s:%s → %s (%dms)", action.adapter, action.id, receipt.status, receipt.duration_ms,
        )
        return receipt


def default_registry() -> AdapterRegistry:
    """Registry wired to the real binaries on PATH."""
    registry = AdapterRegistry()
    registry.register(CommandAdapter(VALIDATOR))
    registry.register(CommandAdapter(KUSTOMIZE))
    registry.register(CommandAdapter(FLUX))
    registry.register(GitAdapter())
    return registry
