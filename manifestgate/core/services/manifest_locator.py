"""
Manifest discovery — which files get validated, and how.

One depth-first walk from the root. Entries are visited in sorted name
order so the same tree always yields the same sequence. A directory
matching an exclusion rule is pruned before descent: nothing under it
is ever returned, including kustomization roots.

Exclusion rules are globs (``fnmatch``, case-sensitive, ``*`` crosses
``/``) tested against:

    - the root-relative path         ``infra/terraform``
    - the same with a ``./`` prefix  ``./infra/terraform``
    - the base name                  ``terraform``

Directories are additionally tested with a trailing ``/`` so
``*/terraform/*`` prunes ``infra/terraform`` itself.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from fnmatch import fnmatchcase
from pathlib import Path

from manifestgate.core.models.manifest import ManifestFile, ManifestMode

logger = logging.getLogger(__name__)

PLAIN_PATTERNS = ("*.yaml", "*.yml")
KUSTOMIZATION_PATTERNS = ("kustomization.yaml", "kustomization.yml")


def split_patterns(value: str | Iterable[str] | None) -> list[str]:
    """Normalize a comma-separated string (or several) into glob patterns.

    Spaces are stripped and empty entries dropped:
    ``"./terraform, .gitignore,"`` → ``["./terraform", ".gitignore"]``.
    """
    if not value:
        return []
    items = [value] if isinstance(value, str) else list(value)
    patterns: list[str] = []
    for item in items:
        patterns.extend(p.replace(" ", "") for p in item.split(",") if p.strip())
    return patterns


def is_excluded(rel_path: str, patterns: Iterable[str], is_dir: bool = False) -> bool:
    """True if ``rel_path`` (POSIX, root-relative) matches any exclusion glob."""
    name = rel_path.rsplit("/", 1)[-1]
    candidates = [rel_path, f"./{rel_path}", name]
    if is_dir:
        candidates += [f"{rel_path}/", f"./{rel_path}/"]
    return any(fnmatchcase(c, p) for p in patterns for c in candidates)


def _matches_any(name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatchcase(name, p) for p in patterns)


def locate(
    root: Path,
    mode: ManifestMode = ManifestMode.PLAIN,
    exclude: Iterable[str] = (),
) -> Iterator[ManifestFile]:
    """Yield manifest files under ``root`` in deterministic walk order.

    Args:
        root: Directory to walk.
        mode: PLAIN yields every YAML file; KUSTOMIZATION_ROOT yields
            kustomization files (their directory is the build input).
        exclude: Glob patterns for files or directories to skip.

    Each call performs a fresh walk.
    """
    exclude = split_patterns(exclude)
    include = KUSTOMIZATION_PATTERNS if mode == ManifestMode.KUSTOMIZATION_ROOT else PLAIN_PATTERNS

    for dirpath, dirnames, filenames in os.walk(root, topdown=True):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else f"{rel_dir}/"

        # Prune in place so os.walk never descends into excluded trees
        kept = []
        for d in sorted(dirnames):
            if is_excluded(f"{prefix}{d}", exclude, is_dir=True):
                logger.debug("Pruned %s%s", prefix, d)
                continue
            kept.append(d)
        dirnames[:] = kept

        for name in sorted(filenames):
            if not _matches_any(name, include):
                continue
            path = current / name
            if path.is_symlink() or not path.is_file():
                continue
            if is_excluded(f"{prefix}{name}", exclude):
                logger.debug("Excluded %s%s", prefix, name)
                continue
            yield ManifestFile(path=path, mode=mode)
