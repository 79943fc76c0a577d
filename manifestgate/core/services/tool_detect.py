"""Tool detection — which external binaries are on PATH, and which versions.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess

from manifestgate.adapters.registry import FLUX, GIT, KUSTOMIZE, VALIDATOR
from manifestgate.core.errors import ConfigurationError
from manifestgate.core.models.settings import GateSettings
from manifestgate.core.services.source_classifier import is_repository_url

logger = logging.getLogger(__name__)


# Each entry: (argv, regex) where the regex's first group is the version.
_CLI_VERSION_SPECS: dict[str, tuple[list[str], str]] = {
    VALIDATOR: (["kubeconform", "-v"],              r"(v?[\d]+\.[\d]+\.[\d]+)"),
    KUSTOMIZE: (["kustomize", "version"],           r"(v[\d]+\.[\d]+\.[\d]+)"),
    FLUX:      (["flux", "version", "--client"],    r"flux:\s*v?([\d]+\.[\d]+\.[\d]+)"),
    GIT:       (["git", "--version"],               r"git version ([\d]+\.[\d]+\.[\d]+)"),
}


def detect_tool(name: str) -> dict:
    """Check if a CLI tool is available on PATH and extract its version.

    Returns:
        {"name": str, "available": bool, "version": str | None}
    """
    if shutil.which(name) is None:
        return {"name": name, "available": False, "version": None}

    spec = _CLI_VERSION_SPECS.get(name)
    if spec is None:
        return {"name": name, "available": True, "version": None}

    args, pattern = spec
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=10)
        if result.returncode == 0:
            # kubeconform prints its version on stderr in some builds
            match = re.search(pattern, result.stdout) or re.search(pattern, result.stderr)
            if match:
                return {"name": name, "available": True, "version": match.group(1)}
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        pass

    # Binary exists but version extraction failed
    return {"name": name, "available": True, "version": None}


def required_tools(settings: GateSettings) -> list[str]:
    """Tools a run with these settings will invoke."""
    tools = [VALIDATOR]
    if settings.kustomize:
        tools.append(KUSTOMIZE)
        if settings.flux:
            tools.append(FLUX)
    if any(is_repository_url(url) for url in settings.crds):
        tools.append(GIT)
    return tools


def _same_version(found: str | None, wanted: str) -> bool:
    return bool(found) and found.lstrip("v") == wanted.lstrip("v")


def check_tools(settings: GateSettings) -> list[dict]:
    """Detect every required tool; fail if any is missing.

    A version different from the configured one is only a warning:
    the binary is provisioned outside this tool.

    Raises:
        ConfigurationError: If a required tool is not on PATH.
    """
    wanted = {VALIDATOR: settings.version, FLUX: settings.flux_version}
    results = []
    missing = []

    for name in required_tools(settings):
        info = detect_tool(name)
        info["wanted"] = wanted.get(name)
        results.append(info)

        if not info["available"]:
            missing.append(name)
        elif info["wanted"] and info["version"] and not _same_version(info["version"], info["wanted"]):
            logger.warning(
                "%s %s found on PATH, configured version is %s",
                name, info["version"], info["wanted"],
            )

    if missing:
        raise ConfigurationError(f"Required tools not found on PATH: {', '.join(missing)}")
    return results
