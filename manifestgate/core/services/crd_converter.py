"""
CRD → JSON Schema conversion.

Every CustomResourceDefinition found under the materialized source
directories yields one JSON Schema per served version, written as
``{kind}_{version}.json`` (lowercased) into a single pooled directory.
The validator resolves them with the template
``<dir>/{{ .ResourceKind }}_{{ .ResourceAPIVersion }}.json``.

Schemas are post-processed the way kubectl validates: objects that
declare ``properties`` reject unknown fields, and int-or-string fields
accept either type.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import yaml

from manifestgate.core.errors import ConfigurationError
from manifestgate.core.models.settings import DEFAULT_FILENAME_FORMAT

logger = logging.getLogger(__name__)

CRD_KIND = "CustomResourceDefinition"
YAML_SUFFIXES = (".yaml", ".yml")

_INT_OR_STRING = {"oneOf": [{"type": "string"}, {"type": "integer"}]}


# ═══════════════════════════════════════════════════════════════════
#  Document discovery
# ═══════════════════════════════════════════════════════════════════


def iter_yaml_files(dirs: Iterable[Path]) -> Iterator[Path]:
    """Yield every .yaml/.yml file under ``dirs``, sorted per directory."""
    for base in dirs:
        if not base.is_dir():
            continue
        for path in sorted(base.rglob("*")):
            if path.suffix in YAML_SUFFIXES and path.is_file():
                yield path


def load_crds(path: Path) -> list[dict]:
    """Return the CRD documents of one file (including ``List`` items).

    Files that are not valid YAML are skipped: CRD bundles often ship
    with Helm templates or other non-YAML files alongside.
    """
    try:
        docs = list(yaml.safe_load_all(path.read_text(encoding="utf-8")))
    except (yaml.YAMLError, UnicodeDecodeError, OSError) as e:
        logger.debug("Skipping %s: %s", path, e)
        return []

    crds: list[dict] = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        if isinstance(doc.get("items"), list):
            crds.extend(
                item for item in doc["items"]
                if isinstance(item, dict) and item.get("kind") == CRD_KIND
            )
        if doc.get("kind") == CRD_KIND:
            crds.append(doc)
    return crds


# ═══════════════════════════════════════════════════════════════════
#  Schema post-processing
# ═══════════════════════════════════════════════════════════════════


def deny_additional_properties(schema: Any, skip: bool = False) -> Any:
    """Set ``additionalProperties: false`` on every object with ``properties``.

    An explicit ``additionalProperties`` is left alone. ``skip`` exempts
    the node itself (used for the document root). Lists
    (``allOf``/``anyOf``/``oneOf`` branches) are not entered.
    """
    if isinstance(schema, dict):
        if "properties" in schema and not skip:
            schema.setdefault("additionalProperties", False)
        for value in schema.values():
            deny_additional_properties(value)
    return schema


def replace_int_or_string(schema: Any) -> Any:
    """Rewrite int-or-string nodes to a string|integer ``oneOf``."""
    if isinstance(schema, dict):
        result = {}
        for key, value in schema.items():
            if isinstance(value, dict) and (
                value.get("format") == "int-or-string"
                or value.get("x-kubernetes-int-or-string") is True
            ):
                result[key] = copy.deepcopy(_INT_OR_STRING)
            else:
                result[key] = replace_int_or_string(value)
        return result
    if isinstance(schema, list):
        return [replace_int_or_string(item) for item in schema]
    return schema


# ═══════════════════════════════════════════════════════════════════
#  Conversion
# ═══════════════════════════════════════════════════════════════════


def crd_schemas(crd: dict) -> list[tuple[str, str, dict]]:
    """Extract ``(kind, version, openAPIV3Schema)`` triples from one CRD.

    Handles ``spec.versions[*].schema`` (apiextensions v1) and the legacy
    top-level ``spec.validation`` with ``spec.version`` (v1beta1).
    """
    spec = crd.get("spec") or {}
    kind = (spec.get("names") or {}).get("kind")
    if not kind:
        return []

    legacy = (spec.get("validation") or {}).get("openAPIV3Schema")
    found: list[tuple[str, str, dict]] = []

    versions = spec.get("versions") or []
    for version in versions:
        if not isinstance(version, dict) or not version.get("name"):
            continue
        schema = (version.get("schema") or {}).get("openAPIV3Schema") or legacy
        if isinstance(schema, dict):
            found.append((kind, version["name"], schema))

    if not versions and isinstance(legacy, dict) and spec.get("version"):
        found.append((kind, spec["version"], legacy))

    return found


def schema_filename(crd: dict, kind: str, version: str, filename_format: str) -> str:
    group = (crd.get("spec") or {}).get("group", "")
    try:
        name = filename_format.format(
            kind=kind,
            version=version,
            group=group.split(".")[0],
            fullgroup=group,
        )
    except (AttributeError, KeyError, IndexError, ValueError) as e:
        raise ConfigurationError(f"Invalid filename format {filename_format!r}: {e!r}") from e
    return f"{name.lower()}.json"


def convert(
    dirs: Iterable[Path],
    out_dir: Path,
    filename_format: str = DEFAULT_FILENAME_FORMAT,
    deny_root_additional_properties: bool = False,
) -> list[Path]:
    """Convert all CRDs under ``dirs`` into JSON Schema files in ``out_dir``.

    ``out_dir`` always exists afterwards, even when no CRD was found.

    Returns:
        Written schema paths, in write order, without duplicates.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    written: dict[Path, Path] = {}

    for path in iter_yaml_files(dirs):
        for crd in load_crds(path):
            for kind, version, schema in crd_schemas(crd):
                target = out_dir / schema_filename(crd, kind, version, filename_format)
                if target in written:
                    logger.warning(
                        "%s/%s declared again in %s, replacing schema from %s",
                        kind, version, path, written[target],
                    )

                processed = deny_additional_properties(
                    copy.deepcopy(schema), skip=not deny_root_additional_properties,
                )
                processed = replace_int_or_string(processed)
                target.write_text(json.dumps(processed, indent=2) + "\n", encoding="utf-8")

                logger.info("Converted %s (%s/%s) → %s", path, kind, version, target.name)
                written[target] = path

    return list(written)
