"""
Git adapter — shallow clones of CRD source repositories.

Uses the git CLI through the same subprocess path as the other tools.
Only read-only subcommands are accepted; the pipeline never pushes,
commits or rewrites anything.
"""

from __future__ import annotations

from manifestgate.adapters.shell.command import CommandAdapter
from manifestgate.core.models.action import Action, Receipt

_ALLOWED_SUBCOMMANDS = frozenset({"clone", "rev-parse", "version", "ls-remote"})


class GitAdapter(CommandAdapter):
    """Read-only git operations.

    Clones run with ``GIT_TERMINAL_PROMPT=0`` so a private or missing
    repository fails immediately instead of waiting for credentials.
    """

    def __init__(self, binary: str = "git"):
        super().__init__("git", binary)

    def validate(self, action: Action) -> tuple[bool, str]:
        if not action.args:
            return False, "Missing git subcommand"
        if action.args[0] not in _ALLOWED_SUBCOMMANDS:
            return False, (
                f"Unsupported git subcommand '{action.args[0]}'. "
                f"Valid: {', '.join(sorted(_ALLOWED_SUBCOMMANDS))}"
            )
        return super().validate(action)

    def execute(self, action: Action) -> Receipt:
        env = {"GIT_TERMINAL_PROMPT": "0", **action.env}
        return super().execute(action.model_copy(update={"env": env}))

    @staticmethod
    def clone_action(
        action_id: str,
        repo_url: str,
        branch: str,
        dest: str,
        timeout: int = 300,
    ) -> Action:
        """Build a single-branch, depth-1 clone action."""
        return Action(
            id=action_id,
            adapter="git",
            args=[
                "clone",
                "--quiet",
                "--depth", "1",
                "--single-branch",
                "--branch", branch,
                repo_url,
                dest,
            ],
            timeout=timeout,
        )
