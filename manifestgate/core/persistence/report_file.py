"""
Report file — JSON copy of a run's ValidationReport for CI artifacts.

Writes are atomic (temp file in the same directory, then rename) so a
consumer polling the path never reads a half-written report.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from manifestgate import __version__
from manifestgate.core.models.report import ValidationReport

logger = logging.getLogger(__name__)


def report_payload(report: ValidationReport, extra: dict | None = None) -> dict:
    """The JSON document written for ``report``."""
    payload = {
        "tool": "manifest-gate",
        "tool_version": __version__,
        "generated_at": datetime.now(UTC).isoformat(),
        **report.to_dict(),
    }
    if extra:
        payload.update(extra)
    return payload


def write_report(report: ValidationReport, path: Path, extra: dict | None = None) -> Path:
    """Write ``report`` as JSON to ``path`` (atomic)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(report_payload(report, extra), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".report_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    logger.debug("Report written to %s", path)
    return path
