"""Manifest file model — one unit of work for the orchestrator."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ManifestMode(str, Enum):
    PLAIN = "plain"
    KUSTOMIZATION_ROOT = "kustomization_root"


class ManifestFile(BaseModel):
    """A discovered manifest path and how it must be processed.

    In plain mode the file itself is validated. For a kustomization
    root the containing directory is the build input and the file is
    never validated directly.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    mode: ManifestMode = ManifestMode.PLAIN

    @property
    def is_kustomization(self) -> bool:
        return self.mode == ManifestMode.KUSTOMIZATION_ROOT

    @property
    def build_input(self) -> Path:
        if self.is_kustomization:
            return self.path.parent
        return self.path
