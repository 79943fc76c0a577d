"""
manifest-gate — CLI entrypoint.

Usage:
    manifestgate --help
    manifestgate validate ./clusters --kustomize --crd https://github.com/org/repo/tree/main/config/crd
    manifestgate convert --crd https://example.com/crds.tar.gz --out ./schemas
    manifestgate locate ./clusters --exclude '*/terraform/*'
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path

import click

from manifestgate import __version__
from manifestgate.core.errors import GateError
from manifestgate.core.observability.logging_config import resolve_level, setup_logging


def _fail(error: Exception) -> None:
    click.secho(f"❌ {error}", fg="red", err=True)
    sys.exit(1)


def _settings(ctx: click.Context, **overrides):
    from manifestgate.core.config.loader import apply_overrides, load_settings

    settings = load_settings(ctx.obj.get("config_path"))
    return apply_overrides(settings, **overrides)


@click.group()
@click.version_option(version=__version__, prog_name="manifestgate")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to .manifestgate.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """manifest-gate — validate Kubernetes manifests with kubeconform."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("MG_LOG_FILE"),
        log_file_level=os.environ.get("MG_LOG_FILE_LEVEL"),
        trace_tools=debug,
    )


# ── validate ────────────────────────────────────────────────────────


@cli.command()
@click.argument("manifests_dir", required=False, type=click.Path(file_okay=False))
@click.option("--kustomize/--no-kustomize", "-k", default=None,
              help="Validate kustomize builds of every kustomization.yaml.")
@click.option("--flux/--no-flux", default=None,
              help="Run 'flux envsubst' on kustomize output before validating.")
@click.option("--catalog/--no-catalog", default=None,
              help="Also resolve schemas from the Datree CRDs catalog.")
@click.option("--strict/--no-strict", default=None, help="Reject unknown fields.")
@click.option("--ignore-missing-schemas/--fail-missing-schemas", default=None,
              help="Pass resources whose schema cannot be found (default) or fail them.")
@click.option("--exclude", "-x", multiple=True,
              help="Glob of paths to skip; repeatable or comma-separated.")
@click.option("--crd", "crds", multiple=True, help="CRD source URL (repo tree, archive, or file).")
@click.option("--env", "-e", "env", multiple=True, help="Flux variable as key:value.")
@click.option("--schema-location", "schema_locations", multiple=True,
              help="Extra kubeconform schema location template.")
@click.option("--output", "-o", type=click.Choice(["text", "json", "junit", "pretty", "tap"]),
              default=None, help="kubeconform output format.")
@click.option("--kubernetes-version", default=None, help="Kubernetes version to validate against.")
@click.option("--validator-version", "version", default=None, help="Expected kubeconform version.")
@click.option("--timeout", type=int, default=None, help="Timeout in seconds for each fetch or tool call.")
@click.option("--work-dir", type=click.Path(file_okay=False), default=None,
              help="Keep CRD sources and converted schemas here instead of a temp dir.")
@click.option("--report-file", type=click.Path(dir_okay=False), default=None,
              help="Write a JSON report to this path.")
@click.option("--skip-tool-check", is_flag=True, help="Don't check tool availability first.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output the report as JSON.")
@click.pass_context
def validate(
    ctx: click.Context,
    manifests_dir: str | None,
    work_dir: str | None,
    report_file: str | None,
    skip_tool_check: bool,
    as_json: bool,
    **options,
) -> None:
    """Validate every manifest under MANIFESTS_DIR (default: settings or '.').

    Examples:

        manifestgate validate ./k8s

        manifestgate validate ./clusters -k --flux -e cluster_name:prod

        manifestgate validate . --crd https://github.com/org/repo/tree/main/config/crd
    """
    from manifestgate.core.persistence.report_file import write_report
    from manifestgate.core.use_cases.validate import run_validation

    try:
        settings = _settings(ctx, manifests_dir=manifests_dir, **options)
        result = run_validation(
            settings,
            workdir=Path(work_dir) if work_dir else None,
            check_binaries=not skip_tool_check,
        )
    except GateError as e:
        _fail(e)
        return

    report = result.report
    if report_file:
        write_report(report, Path(report_file), extra={"schemas": result.schemas.to_dict()})

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if report.ok else 1)

    click.echo(report.output, nl=False)

    try:
        report.raise_for_status()
    except GateError as e:
        _fail(e)

    if not ctx.obj.get("quiet"):
        click.secho(
            f"✅ {report.total} file(s) validated, "
            f"{len(result.schemas.schema_files)} CRD schema(s)",
            fg="green",
            err=True,
        )


# ── convert ─────────────────────────────────────────────────────────


@cli.command()
@click.option("--crd", "crds", multiple=True, help="CRD source URL (repo tree, archive, or file).")
@click.option("--out", "out_dir", type=click.Path(file_okay=False), required=True,
              help="Directory for the converted JSON schemas.")
@click.option("--filename-format", default=None, help="Schema file name, e.g. '{kind}_{version}'.")
@click.option("--deny-root-additional-properties", is_flag=True, default=None,
              help="Also reject unknown top-level fields.")
@click.option("--timeout", type=int, default=None, help="Timeout in seconds for each fetch.")
@click.pass_context
def convert(ctx: click.Context, out_dir: str, **options) -> None:
    """Fetch CRD sources and convert them to kubeconform JSON schemas."""
    from manifestgate.adapters.registry import default_registry
    from manifestgate.core.use_cases.validate import prepare_schemas

    try:
        settings = _settings(ctx, **options)
        with tempfile.TemporaryDirectory(prefix="manifestgate-") as scratch:
            schemas = prepare_schemas(
                settings, Path(scratch), default_registry(), out_dir=Path(out_dir),
            )
    except GateError as e:
        _fail(e)
        return

    for path in schemas.schema_files:
        click.echo(str(path))
    if not ctx.obj.get("quiet"):
        click.secho(f"✅ {len(schemas.schema_files)} schema(s) written to {out_dir}", fg="green", err=True)


# ── locate ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("manifests_dir", required=False, type=click.Path(file_okay=False))
@click.option("--kustomize/--no-kustomize", "-k", default=None, help="List kustomization roots.")
@click.option("--exclude", "-x", multiple=True, help="Glob of paths to skip.")
@click.pass_context
def locate(ctx: click.Context, manifests_dir: str | None, **options) -> None:
    """List the files a validate run would process, in order."""
    from manifestgate.core.models.manifest import ManifestMode
    from manifestgate.core.services.manifest_locator import locate as locate_manifests

    try:
        settings = _settings(ctx, manifests_dir=manifests_dir, **options)
    except GateError as e:
        _fail(e)
        return

    root = Path(settings.manifests_dir)
    if not root.is_dir():
        _fail(GateError(f"Manifests directory not found: {root}"))

    mode = ManifestMode.KUSTOMIZATION_ROOT if settings.kustomize else ManifestMode.PLAIN
    for manifest in locate_manifests(root, mode=mode, exclude=settings.exclude):
        click.echo(manifest.path.as_posix())


# ── classify ────────────────────────────────────────────────────────


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--timeout", type=int, default=300, help="Timeout in seconds for the archive check.")
def classify(urls: tuple[str, ...], timeout: int) -> None:
    """Show how each CRD source URL would be fetched."""
    from manifestgate.core.services.source_classifier import classify as classify_url

    for url in urls:
        try:
            source = classify_url(url, timeout=timeout)
        except GateError as e:
            _fail(e)
            return
        click.echo(f"{source.kind.value:<11} {url}")
        if source.is_repository:
            click.echo(f"            repo={source.repo_url} branch={source.branch} subdir={source.subdir or '.'}")


# ── tools ───────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def tools(ctx: click.Context, as_json: bool) -> None:
    """Show which external tools are available."""
    from manifestgate.adapters.registry import FLUX, GIT, KUSTOMIZE, VALIDATOR
    from manifestgate.core.services.tool_detect import detect_tool

    try:
        settings = _settings(ctx)
    except GateError as e:
        _fail(e)
        return

    wanted = {VALIDATOR: settings.version, FLUX: settings.flux_version}
    results = [detect_tool(name) for name in (VALIDATOR, KUSTOMIZE, FLUX, GIT)]

    if as_json:
        click.echo(json.dumps(results, indent=2))
        return

    for info in results:
        name = info["name"]
        if info["available"]:
            click.secho(f"   ✓ {name:<12}", fg="green", nl=False)
            version = info["version"] or "unknown version"
            hint = f" (configured {wanted[name]})" if name in wanted else ""
            click.echo(f"{version}{hint}")
        else:
            click.secho(f"   ✗ {name:<12}", fg="red", nl=False)
            click.echo("not found")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
