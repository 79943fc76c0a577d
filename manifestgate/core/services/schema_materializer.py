"""
Schema materialization — one local directory per CRD source.

Each source lands in ``<workdir>/crds/<index>`` where ``index`` is its
position in the input list, so two sources never collide and the
layout is reproducible. Any failure aborts the whole set.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from manifestgate.adapters.registry import GIT, AdapterRegistry
from manifestgate.adapters.vcs.git import GitAdapter
from manifestgate.core.errors import ConfigurationError, FormatError, TransportError
from manifestgate.core.models.source import SchemaSource, SchemaSourceKind
from manifestgate.core.services import archives
from manifestgate.core.services.http_fetch import download

logger = logging.getLogger(__name__)

CRDS_DIR = "crds"


def source_dir(workdir: Path, index: int) -> Path:
    """Mount path of the ``index``-th source."""
    return workdir / CRDS_DIR / str(index)


def _url_basename(url: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or "crds.yaml"


def _materialize_repository(
    source: SchemaSource,
    target: Path,
    registry: AdapterRegistry,
    index: int,
    timeout: int,
) -> None:
    assert source.repo_url and source.branch

    with tempfile.TemporaryDirectory(prefix="mg-clone-") as scratch:
        checkout = Path(scratch) / "repo"
        receipt = registry.execute(
            GitAdapter.clone_action(
                action_id=f"clone-{index}",
                repo_url=source.repo_url,
                branch=source.branch,
                dest=str(checkout),
                timeout=timeout,
            )
        )
        if receipt.failed:
            raise TransportError(
                f"failed to clone {source.repo_url} at {source.branch}: {receipt.error}"
            )

        projected = checkout / source.subdir if source.subdir else checkout
        if not projected.is_dir():
            raise FormatError(
                f"directory '{source.subdir}' not found in {source.repo_url}@{source.branch}"
            )
        shutil.copytree(
            projected,
            target,
            ignore=shutil.ignore_patterns(".git"),
            dirs_exist_ok=True,
        )


def _materialize_archive(source: SchemaSource, target: Path, timeout: int) -> None:
    name = _url_basename(source.locator)
    with tempfile.TemporaryDirectory(prefix="mg-archive-") as scratch:
        local = download(source.locator, Path(scratch) / name, timeout=timeout)
        files = archives.extract(local, target, name_hint=name)
    logger.debug("Extracted %d files from %s", len(files), source.locator)


def _materialize_raw_file(source: SchemaSource, target: Path, timeout: int) -> None:
    download(source.locator, target / _url_basename(source.locator), timeout=timeout)


def materialize_source(
    source: SchemaSource,
    target: Path,
    registry: AdapterRegistry,
    index: int = 0,
    timeout: int = 300,
) -> Path:
    """Produce the raw CRD documents of one source inside ``target``.

    ``target`` is emptied first; nothing from an earlier run survives.
    """
    if target.exists():
        shutil.rmtree(target)
    target.mkdir(parents=True)

    if source.kind == SchemaSourceKind.REPOSITORY:
        _materialize_repository(source, target, registry, index, timeout)
    elif source.kind == SchemaSourceKind.ARCHIVE:
        _materialize_archive(source, target, timeout)
    else:
        _materialize_raw_file(source, target, timeout)

    logger.info("Materialized %s → %s", source.describe(), target)
    return target


def materialize(
    sources: list[SchemaSource],
    workdir: Path,
    registry: AdapterRegistry,
    timeout: int = 300,
) -> list[Path]:
    """Materialize every source, in order, one directory each.

    Returns:
        ``[workdir/crds/0, workdir/crds/1, ...]`` matching ``sources``.
    """
    if any(s.kind == SchemaSourceKind.REPOSITORY for s in sources) and registry.get(GIT) is None:
        raise ConfigurationError("repository CRD sources need a git adapter")

    crds_root = workdir / CRDS_DIR
    if crds_root.exists():
        shutil.rmtree(crds_root)

    return [
        materialize_source(source, source_dir(workdir, idx), registry, idx, timeout)
        for idx, source in enumerate(sources)
    ]
