"""
Adapter base — the protocol contract between the pipeline and tools.

Every external tool the pipeline drives (kubeconform, kustomize, flux,
git) sits behind this interface. Core services only talk to adapters
through the registry, so tests swap in MockAdapter instances.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from manifestgate.core.models.action import Action, Receipt


class Adapter(ABC):
    """Abstract base class for all tool adapters.

    Adapters run external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'kubeconform', 'git')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    @abstractmethod
    def validate(self, action: Action) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, action: Action) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
