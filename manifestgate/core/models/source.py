"""
Schema source models — where CRD documents come from.

A SchemaSource is classified once from a user-supplied locator string
and consumed once by the materializer. The kind set is closed: a
repository subtree, a downloadable archive, or a single raw file.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SchemaSourceKind(str, Enum):
    REPOSITORY = "repository"
    ARCHIVE = "archive"
    RAW_FILE = "raw_file"


class SchemaSource(BaseModel):
    """A classified CRD source.

    Repository sources carry their decomposed clone URL, branch and
    subdirectory; the other kinds leave those fields unset.
    """

    model_config = ConfigDict(frozen=True)

    locator: str
    kind: SchemaSourceKind
    repo_url: str | None = None
    branch: str | None = None
    subdir: str = ""

    @property
    def is_repository(self) -> bool:
        return self.kind == SchemaSourceKind.REPOSITORY

    def describe(self) -> str:
        """One-line human description for logs and CLI output."""
        if self.is_repository:
            where = f"{self.repo_url}@{self.branch}"
            if self.subdir:
                where += f":{self.subdir}"
            return f"{self.kind.value} {where}"
        return f"{self.kind.value} {self.locator}"
