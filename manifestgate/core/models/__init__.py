"""
Domain models — pydantic and dataclass types for manifest-gate.

All models are re-exported here for convenient access:

    from manifestgate.core.models import SchemaSource, ManifestFile, ValidationReport
"""

from manifestgate.core.models.action import Action, Receipt
from manifestgate.core.models.manifest import ManifestFile, ManifestMode
from manifestgate.core.models.report import (
    Outcome,
    RunPhase,
    ValidationReport,
    ValidationVerdict,
)
from manifestgate.core.models.settings import GateSettings
from manifestgate.core.models.source import SchemaSource, SchemaSourceKind

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # manifest.py
    "ManifestFile",
    "ManifestMode",
    # report.py
    "Outcome",
    "RunPhase",
    "ValidationReport",
    "ValidationVerdict",
    # settings.py
    "GateSettings",
    # source.py
    "SchemaSource",
    "SchemaSourceKind",
]
