"""
Command adapter — run one external binary and capture its output.

kubeconform, kustomize and flux are all driven through this adapter:
the argv is ``[binary, *action.args]``, ``action.stdin`` is piped in,
and ``action.env`` is layered over the process environment.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from manifestgate.adapters.base import Adapter
from manifestgate.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class CommandAdapter(Adapter):
    """Execute a single binary and capture stdout/stderr.

    Args:
        adapter_name: Registry name (e.g. 'kubeconform').
        binary: Executable name or path; defaults to ``adapter_name``.
    """

    def __init__(self, adapter_name: str, binary: str | None = None):
        self._name = adapter_name
        self._binary = binary or adapter_name

    @property
    def name(self) -> str:
        return self._name

    @property
    def binary(self) -> str:
        return self._binary

    def is_available(self) -> bool:
        return shutil.which(self._binary) is not None

    def validate(self, action: Action) -> tuple[bool, str]:
        if action.cwd and not Path(action.cwd).is_dir():
            return False, f"Working directory does not exist: {action.cwd}"
        if not self.is_available():
            return False, f"'{self._binary}' not found on PATH"
        return True, ""

    def execute(self, action: Action) -> Receipt:
        argv = [self._binary, *action.args]
        env = {**os.environ, **action.env} if action.env else None

        logger.debug("Executing: %s (cwd=%s)", " ".join(argv), action.cwd or ".")
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                input=action.stdin,
                cwd=action.cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=action.timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"{self._binary} timed out after {action.timeout}s",
                metadata={"argv": argv, "timeout": action.timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Cannot run {self._binary}: {e}",
                metadata={"argv": argv},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output=result.stdout,
                duration_ms=elapsed_ms,
                return_code=0,
                metadata={"argv": argv, "stderr": result.stderr},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=action.id,
            error=result.stderr.strip() or f"{self._binary} exited with code {result.returncode}",
            output=result.stdout,
            duration_ms=elapsed_ms,
            return_code=result.returncode,
            metadata={"argv": argv},
        )
