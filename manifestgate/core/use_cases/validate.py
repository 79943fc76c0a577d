"""
Validate use case — the full run, from settings to report.

    env check → tool check → classify CRD sources → materialize →
    convert to JSON Schema → locate manifests → orchestrate

Every stage before orchestration raises a GateError on failure and the
run stops there. Orchestration itself returns a report; a failing
manifest is data, not an exception, so the caller can print the
validator's output before exiting non-zero.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path

from manifestgate.adapters.registry import AdapterRegistry, default_registry
from manifestgate.core.errors import ConfigurationError
from manifestgate.core.models.manifest import ManifestMode
from manifestgate.core.models.report import ValidationReport
from manifestgate.core.models.settings import GateSettings
from manifestgate.core.models.source import SchemaSource
from manifestgate.core.services import crd_converter, manifest_locator, schema_materializer
from manifestgate.core.services.orchestrator import ValidationOrchestrator
from manifestgate.core.services.source_classifier import classify_all
from manifestgate.core.services.tool_detect import check_tools

logger = logging.getLogger(__name__)

SCHEMAS_DIR = "schemas"


@dataclass
class SchemaSet:
    """CRD sources of a run and the schemas converted from them."""

    sources: list[SchemaSource] = field(default_factory=list)
    source_dirs: list[Path] = field(default_factory=list)
    schema_dir: Path | None = None
    schema_files: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sources": [s.model_dump(mode="json") for s in self.sources],
            "schema_dir": str(self.schema_dir) if self.schema_dir else None,
            "schemas": [p.name for p in self.schema_files],
        }


@dataclass
class ValidateResult:
    """Result of a validation run."""

    report: ValidationReport
    schemas: SchemaSet
    manifests_root: Path

    @property
    def ok(self) -> bool:
        return self.report.ok

    def to_dict(self) -> dict:
        return {
            "manifests_root": str(self.manifests_root),
            "schemas": self.schemas.to_dict(),
            "report": self.report.to_dict(),
        }


def prepare_schemas(
    settings: GateSettings,
    workdir: Path,
    registry: AdapterRegistry,
    out_dir: Path | None = None,
) -> SchemaSet:
    """Classify, materialize and convert every CRD source of ``settings``.

    Args:
        out_dir: Where converted schemas go (default ``workdir/schemas``,
            emptied first). An explicit ``out_dir`` is written into as is.
    """
    schema_dir = out_dir or workdir / SCHEMAS_DIR
    if out_dir is None and schema_dir.exists():
        shutil.rmtree(schema_dir)

    sources = classify_all(settings.crds, timeout=settings.timeout)
    dirs = schema_materializer.materialize(sources, workdir, registry, timeout=settings.timeout)
    files = crd_converter.convert(
        dirs,
        schema_dir,
        filename_format=settings.filename_format,
        deny_root_additional_properties=settings.deny_root_additional_properties,
    )
    logger.info("%d schema(s) from %d CRD source(s)", len(files), len(sources))
    return SchemaSet(sources=sources, source_dirs=dirs, schema_dir=schema_dir, schema_files=files)


def run_validation(
    settings: GateSettings,
    registry: AdapterRegistry | None = None,
    workdir: Path | None = None,
    check_binaries: bool = True,
) -> ValidateResult:
    """Run a full validation.

    Args:
        settings: Run settings.
        registry: Tool adapters (default: the real binaries on PATH).
        workdir: Scratch directory for CRD sources and schemas. A
            temporary directory is used (and removed) when omitted.
        check_binaries: Verify required tools are on PATH first.

    Raises:
        GateError: Any failure before orchestration.
    """
    env = settings.parsed_env()

    root = Path(settings.manifests_dir).resolve()
    if not root.is_dir():
        raise ConfigurationError(f"Manifests directory not found: {settings.manifests_dir}")

    if check_binaries:
        check_tools(settings)

    registry = registry or default_registry()

    with ExitStack() as stack:
        if workdir is None:
            workdir = Path(stack.enter_context(tempfile.TemporaryDirectory(prefix="manifestgate-")))
        workdir.mkdir(parents=True, exist_ok=True)

        schemas = prepare_schemas(settings, workdir, registry)

        mode = ManifestMode.KUSTOMIZATION_ROOT if settings.kustomize else ManifestMode.PLAIN
        files = manifest_locator.locate(root, mode=mode, exclude=settings.exclude)

        orchestrator = ValidationOrchestrator(
            registry=registry,
            settings=settings,
            root=root,
            schema_dir=schemas.schema_dir,
            env=env,
        )
        report = orchestrator.run(files)

    return ValidateResult(report=report, schemas=schemas, manifests_root=root)
