"""
Tests for crd_converter — CRD YAML → kubeconform JSON schemas.
"""

import json
from pathlib import Path

import pytest

from manifestgate.core.errors import ConfigurationError
from manifestgate.core.services.crd_converter import (
    convert,
    crd_schemas,
    deny_additional_properties,
    load_crds,
    replace_int_or_string,
)


def _load(path: Path) -> dict:
    return json.loads(path.read_text())


class TestConvert:
    def test_one_file_per_version(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "src", "widget.yaml", crd_yaml)
        out = tmp_path / "schemas"

        written = convert([tmp_path / "src"], out)

        assert [p.name for p in written] == ["widget_v1alpha1.json", "widget_v1.json"]
        assert sorted(p.name for p in out.iterdir()) == ["widget_v1.json", "widget_v1alpha1.json"]

    def test_nested_objects_deny_unknown_fields(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "src", "widget.yaml", crd_yaml)
        convert([tmp_path / "src"], tmp_path / "out")

        schema = _load(tmp_path / "out" / "widget_v1alpha1.json")
        assert "additionalProperties" not in schema
        assert schema["properties"]["spec"]["additionalProperties"] is False

    def test_root_deny_when_requested(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "src", "widget.yaml", crd_yaml)
        convert([tmp_path / "src"], tmp_path / "out", deny_root_additional_properties=True)

        assert _load(tmp_path / "out" / "widget_v1.json")["additionalProperties"] is False

    def test_int_or_string_fields(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "src", "widget.yaml", crd_yaml)
        convert([tmp_path / "src"], tmp_path / "out")

        props = _load(tmp_path / "out" / "widget_v1.json")["properties"]["spec"]["properties"]
        expected = {"oneOf": [{"type": "string"}, {"type": "integer"}]}
        assert props["port"] == expected
        assert props["target"] == expected
        assert props["size"] == {"type": "integer"}

    def test_filename_format(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "src", "widget.yaml", crd_yaml)
        written = convert([tmp_path / "src"], tmp_path / "out", filename_format="{group}-{kind}_{version}")

        assert {p.name for p in written} == {"example-widget_v1.json", "example-widget_v1alpha1.json"}

    def test_unknown_filename_placeholder(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "src", "widget.yaml", crd_yaml)
        with pytest.raises(ConfigurationError, match="apiversion"):
            convert([tmp_path / "src"], tmp_path / "out", filename_format="{kind}_{apiversion}")

    def test_non_crd_documents_ignored(self, tmp_path: Path, write_file):
        write_file(tmp_path / "src", "deploy.yaml", """\
            apiVersion: apps/v1
            kind: Deployment
            metadata:
              name: web
        """)
        write_file(tmp_path / "src", "chart/templates/crd.yaml", "{{- if .Values.crds }}\n: :\n")
        write_file(tmp_path / "src", "README.md", "# crds\n")

        assert convert([tmp_path / "src"], tmp_path / "out") == []
        assert (tmp_path / "out").is_dir()

    def test_missing_source_dir(self, tmp_path: Path):
        assert convert([tmp_path / "nope"], tmp_path / "out") == []
        assert (tmp_path / "out").is_dir()

    def test_duplicate_declaration_last_wins(self, tmp_path: Path, crd_yaml, write_file):
        write_file(tmp_path / "a", "widget.yaml", crd_yaml)
        write_file(tmp_path / "b", "widget.yaml", crd_yaml.replace("type: integer", "type: number"))

        written = convert([tmp_path / "a", tmp_path / "b"], tmp_path / "out")

        assert len(written) == 2
        props = _load(tmp_path / "out" / "widget_v1.json")["properties"]["spec"]["properties"]
        assert props["size"] == {"type": "number"}


class TestLoadCrds:
    def test_multi_document_and_list(self, tmp_path: Path, crd_yaml, write_file):
        path = write_file(tmp_path, "bundle.yaml", "---\n" + crd_yaml + "---\nkind: ConfigMap\n")
        assert len(load_crds(path)) == 1

        indented = "\n".join("    " + line for line in crd_yaml.splitlines())
        listed = write_file(tmp_path, "list.yaml", "kind: List\nitems:\n  -\n" + indented + "\n")
        assert len(load_crds(listed)) == 1

    def test_invalid_yaml_skipped(self, tmp_path: Path, write_file):
        path = write_file(tmp_path, "broken.yaml", "kind: [unclosed\n")
        assert load_crds(path) == []


class TestCrdSchemas:
    def test_legacy_validation_block(self):
        crd = {
            "kind": "CustomResourceDefinition",
            "spec": {
                "group": "example.com",
                "names": {"kind": "Gadget"},
                "version": "v1beta1",
                "validation": {"openAPIV3Schema": {"type": "object"}},
            },
        }
        assert crd_schemas(crd) == [("Gadget", "v1beta1", {"type": "object"})]

    def test_versions_without_schema_skipped(self):
        crd = {"spec": {"names": {"kind": "Gadget"}, "versions": [{"name": "v1"}]}}
        assert crd_schemas(crd) == []

    def test_missing_kind(self):
        assert crd_schemas({"spec": {"versions": [{"name": "v1"}]}}) == []


class TestPostProcessing:
    def test_explicit_additional_properties_kept(self):
        schema = {
            "properties": {
                "labels": {"type": "object", "properties": {}, "additionalProperties": True},
            },
        }
        out = deny_additional_properties(schema, skip=True)
        assert out["properties"]["labels"]["additionalProperties"] is True
        assert "additionalProperties" not in out

    def test_int_or_string_inside_lists(self):
        schema = {"anyOf": [{"properties": {"p": {"x-kubernetes-int-or-string": True}}}]}
        out = replace_int_or_string(schema)
        assert out["anyOf"][0]["properties"]["p"] == {
            "oneOf": [{"type": "string"}, {"type": "integer"}]
        }

    def test_composition_branches_left_open(self):
        schema = {
            "properties": {
                "spec": {
                    "type": "object",
                    "properties": {"a": {"type": "integer"}, "b": {"type": "string"}},
                    "allOf": [{"properties": {"a": {"minimum": 1}}}],
                    "anyOf": [{"properties": {"b": {"minLength": 1}}}],
                },
            },
        }
        out = deny_additional_properties(schema, skip=True)
        spec = out["properties"]["spec"]
        assert spec["additionalProperties"] is False
        assert "additionalProperties" not in spec["allOf"][0]
        assert "additionalProperties" not in spec["anyOf"][0]

    def test_array_items_still_closed(self):
        schema = {
            "properties": {
                "ports": {"type": "array", "items": {"type": "object", "properties": {"name": {}}}},
            },
        }
        out = deny_additional_properties(schema, skip=True)
        assert out["properties"]["ports"]["items"]["additionalProperties"] is False
