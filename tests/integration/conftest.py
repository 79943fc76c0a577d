"""
Auto-mark all tests in this directory as integration tests.

These drive the real kubeconform / kustomize binaries and are skipped
when the binary is not on PATH.

Run ONLY integration tests:
    pytest tests/integration/ -m integration

Run ONLY unit tests:
    pytest -m "not integration"
"""

import shutil

import pytest


def pytest_collection_modifyitems(items):
    """Auto-apply the 'integration' marker to every test in this directory."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def require_tool():
    """Skip the test unless every named binary is on PATH."""

    def _require(*names: str) -> None:
        missing = [n for n in names if shutil.which(n) is None]
        if missing:
            pytest.skip(f"not on PATH: {', '.join(missing)}")

    return _require
