"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import io
import tarfile
import textwrap
from pathlib import Path

import pytest

from manifestgate.adapters.mock import MockAdapter
from manifestgate.adapters.registry import FLUX, GIT, KUSTOMIZE, VALIDATOR, AdapterRegistry


class FakeResponse(io.BytesIO):
    """What ``urllib.request.urlopen`` returns: a readable body with a status."""

    def __init__(self, body: bytes = b"", status: int = 200):
        super().__init__(body)
        self.status = status


@pytest.fixture
def write_file():
    """Factory: create ``root/rel`` with dedented content, making parents."""

    def _write(root: Path, rel: str, content: str = "") -> Path:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content))
        return path

    return _write


@pytest.fixture
def tools() -> dict[str, MockAdapter]:
    """One mock per external tool, all succeeding by default."""
    return {
        VALIDATOR: MockAdapter(adapter_name=VALIDATOR, default_output="Summary: 1 resource found - Valid: 1\n"),
        KUSTOMIZE: MockAdapter(adapter_name=KUSTOMIZE, default_output="kind: Deployment\n"),
        FLUX: MockAdapter(adapter_name=FLUX, default_output="kind: Deployment\n"),
        GIT: MockAdapter(adapter_name=GIT),
    }


@pytest.fixture
def registry(tools: dict[str, MockAdapter]) -> AdapterRegistry:
    """Registry wired to the mock tools."""
    reg = AdapterRegistry()
    for adapter in tools.values():
        reg.register(adapter)
    return reg


@pytest.fixture
def crd_yaml() -> str:
    """A two-version CRD for kind Widget in group example.com."""
    return textwrap.dedent("""\
        apiVersion: apiextensions.k8s.io/v1
        kind: CustomResourceDefinition
        metadata:
          name: widgets.example.com
        spec:
          group: example.com
          names:
            kind: Widget
            plural: widgets
          scope: Namespaced
          versions:
            - name: v1alpha1
              served: true
              storage: false
              schema:
                openAPIV3Schema:
                  type: object
                  properties:
                    spec:
                      type: object
                      properties:
                        size:
                          type: integer
            - name: v1
              served: true
              storage: true
              schema:
                openAPIV3Schema:
                  type: object
                  properties:
                    spec:
                      type: object
                      properties:
                        size:
                          type: integer
                        port:
                          x-kubernetes-int-or-string: true
                        target:
                          format: int-or-string
                          type: string
    """)


@pytest.fixture
def fake_response():
    """Factory: ``fake_response(body, status=200)`` for patching urlopen."""
    return FakeResponse


@pytest.fixture
def tar_gz():
    """Factory: gzipped tarball bytes from ``{name: data}``."""

    def _build(files: dict[str, bytes]) -> bytes:
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w:gz") as tf:
            for name, data in files.items():
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
        return buf.getvalue()

    return _build
