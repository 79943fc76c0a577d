"""
Validation orchestrator — drive the validator over discovered manifests.

Phases of one run:

    build_locations → (select_pipeline → invoke)* → aggregate → done
                                          └─ first failure ─→ failed

Per file the pipeline is one of:

    plain               kubeconform <file>
    kustomization       kustomize build <dir> | kubeconform -
    kustomization+flux  kustomize build <dir> | flux envsubst | kubeconform -

Processing is sequential and fail-fast: the first failing file ends
the run and no later file is touched. Validator output is passed
through verbatim between "Processing…" and "Validation…" lines.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from manifestgate.adapters.registry import FLUX, KUSTOMIZE, VALIDATOR, AdapterRegistry
from manifestgate.core.models.action import Action, Receipt
from manifestgate.core.models.manifest import ManifestFile
from manifestgate.core.models.report import (
    Outcome,
    RunPhase,
    ValidationReport,
    ValidationVerdict,
)
from manifestgate.core.models.settings import GateSettings

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "default"
LOCAL_SCHEMA_TEMPLATE = "{{.ResourceKind}}_{{.ResourceAPIVersion}}.json"
CATALOG_LOCATION = (
    "https://raw.githubusercontent.com/datreeio/CRDs-catalog/main/"
    "{{.Group}}/{{.ResourceKind}}_{{.ResourceAPIVersion}}.json"
)


def build_schema_locations(
    schema_dir: Path | None,
    catalog: bool = False,
    extra: Iterable[str] = (),
) -> list[str]:
    """Ordered schema-location templates for the validator.

    The built-in catalog always comes first. The local template is only
    added when the converted-schema directory holds at least one file.
    """
    locations = [DEFAULT_LOCATION]
    if schema_dir is not None and schema_dir.is_dir() and any(
        p.is_file() for p in schema_dir.iterdir()
    ):
        locations.append(f"{schema_dir.as_posix()}/{LOCAL_SCHEMA_TEMPLATE}")
    if catalog:
        locations.append(CATALOG_LOCATION)
    locations.extend(loc for loc in extra if loc and loc not in locations)
    return locations


def validator_args(settings: GateSettings, locations: Iterable[str]) -> list[str]:
    """Validator flags shared by every invocation of a run."""
    args = ["-summary"]
    if settings.strict:
        args.append("-strict")
    if settings.ignore_missing_schemas:
        args.append("-ignore-missing-schemas")
    if settings.output != "text":
        args += ["-output", settings.output]
    if settings.kubernetes_version:
        args += ["-kubernetes-version", settings.kubernetes_version]
    for location in locations:
        args += ["-schema-location", location]
    return args


class ValidationOrchestrator:
    """Runs the per-file validation pipelines for one run.

    Args:
        registry: Adapter registry holding kubeconform, kustomize and flux.
        settings: Run settings (flags, timeout, Flux toggle).
        root: Manifest root; tools run with it as working directory and
            paths are reported relative to it.
        schema_dir: Pooled converted-schema directory, if any.
        env: Parsed key/value pairs for Flux substitution.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        settings: GateSettings,
        root: Path,
        schema_dir: Path | None = None,
        env: dict[str, str] | None = None,
    ):
        self._registry = registry
        self._settings = settings
        self._root = root
        self._schema_dir = schema_dir
        self._env = env or {}
        self._report = ValidationReport()
        self._args: list[str] = []
        self._counter = 0

    @property
    def phase(self) -> RunPhase:
        return self._report.phase

    def _enter(self, phase: RunPhase) -> None:
        logger.debug("phase %s → %s", self._report.phase.value, phase.value)
        self._report.phase = phase

    def run(self, files: Iterable[ManifestFile]) -> ValidationReport:
        """Validate ``files`` in order, stopping at the first failure.

        Each call starts a fresh report; earlier reports are left untouched.
        """
        self._report = ValidationReport()
        self._counter = 0
        self._enter(RunPhase.BUILD_LOCATIONS)
        self._report.schema_locations = build_schema_locations(
            self._schema_dir,
            catalog=self._settings.catalog,
            extra=self._settings.schema_locations,
        )
        self._args = validator_args(self._settings, self._report.schema_locations)
        logger.info("Schema locations: %s", ", ".join(self._report.schema_locations))

        for manifest in files:
            self._enter(RunPhase.SELECT_PIPELINE)
            verdict = self.validate_file(manifest)
            self._report.verdicts.append(verdict)
            if not verdict.ok:
                logger.info("Stopping at first failure: %s", verdict.path)
                self._enter(RunPhase.FAILED)
                return self._report

        self._enter(RunPhase.AGGREGATE)
        logger.info("%d file(s) validated", self._report.total)
        self._enter(RunPhase.DONE)
        return self._report

    # ── Per-file pipelines ──────────────────────────────────────

    def validate_file(self, manifest: ManifestFile) -> ValidationVerdict:
        """Select and run the pipeline for one manifest file."""
        self._counter += 1
        display = self._display(manifest.path)

        if manifest.is_kustomization:
            header = f"Processing kustomization file: {display}\n"
            receipt = self._run_kustomization(manifest)
        else:
            header = f"Processing file: {display}\n"
            self._enter(RunPhase.INVOKE)
            receipt = self._validate(args=[display])

        # Only validator output is passed through
        body = receipt.output if receipt.adapter == VALIDATOR else ""
        if body and not body.endswith("\n"):
            body += "\n"

        if receipt.ok:
            return ValidationVerdict(
                path=display,
                outcome=Outcome.SUCCESS,
                message="",
                output=f"{header}{body}Validation successful for {display}\n",
            )

        message = receipt.error or f"{receipt.adapter} failed"
        if receipt.adapter != VALIDATOR:
            body += f"{receipt.adapter}: {message}\n"
        return ValidationVerdict(
            path=display,
            outcome=Outcome.FAILURE,
            message=message,
            output=f"{header}{body}Validation failed for {display}\n",
        )

    def _run_kustomization(self, manifest: ManifestFile) -> Receipt:
        """kustomize build → (flux envsubst) → validator on stdin."""
        build_dir = self._display(manifest.build_input)
        self._enter(RunPhase.INVOKE)

        built = self._call(KUSTOMIZE, "build", ["build", build_dir])
        if built.failed:
            return built
        stream = built.output

        if self._settings.flux:
            substituted = self._call(FLUX, "envsubst", ["envsubst"], stdin=stream, env=self._env)
            if substituted.failed:
                return substituted
            stream = substituted.output

        return self._validate(args=["-"], stdin=stream)

    def _validate(self, args: list[str], stdin: str | None = None) -> Receipt:
        return self._call(VALIDATOR, "validate", [*self._args, *args], stdin=stdin)

    def _call(
        self,
        adapter: str,
        step: str,
        args: list[str],
        stdin: str | None = None,
        env: dict[str, str] | None = None,
    ) -> Receipt:
        action = Action(
            id=f"{step}-{self._counter}",
            adapter=adapter,
            args=args,
            stdin=stdin,
            env=env or {},
            cwd=str(self._root),
            timeout=self._settings.timeout,
        )
        return self._registry.execute(action)

    def _display(self, path: Path) -> str:
        try:
            rel = path.relative_to(self._root).as_posix()
        except ValueError:
            return path.as_posix()
        return rel or "."
