"""
Gate settings — every knob of a validation run.

Loaded from ``.manifestgate.yml`` (optional) and then overridden by
CLI options. Unknown keys in the file are rejected.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from manifestgate.core.errors import ConfigurationError

DEFAULT_VALIDATOR_VERSION = "v0.6.7"
DEFAULT_FLUX_VERSION = "2.5.1"
DEFAULT_FILENAME_FORMAT = "{kind}_{version}"

OutputFormat = Literal["text", "json", "junit", "pretty", "tap"]


def _split_csv(value: object) -> object:
    """Accept ``"a, b"`` as well as ``["a", "b"]`` or ``["a,b"]`` for list fields."""
    if isinstance(value, str):
        value = [value]
    if isinstance(value, (list, tuple)):
        parts: list[object] = []
        for item in value:
            if isinstance(item, str):
                parts.extend(p.strip() for p in item.split(",") if p.strip())
            else:
                parts.append(item)
        return parts
    return value


class GateSettings(BaseModel):
    """Settings for one validation run."""

    model_config = ConfigDict(extra="forbid")

    version: str = DEFAULT_VALIDATOR_VERSION
    flux_version: str = DEFAULT_FLUX_VERSION

    manifests_dir: str = "."
    kustomize: bool = False
    flux: bool = False
    catalog: bool = False

    strict: bool = True
    ignore_missing_schemas: bool = True
    output: OutputFormat = "text"
    kubernetes_version: str | None = None

    exclude: list[str] = Field(default_factory=list)
    crds: list[str] = Field(default_factory=list)
    env: list[str] = Field(default_factory=list)
    schema_locations: list[str] = Field(default_factory=list)

    filename_format: str = DEFAULT_FILENAME_FORMAT
    deny_root_additional_properties: bool = False

    timeout: int = Field(default=300, gt=0)

    @field_validator("exclude", "schema_locations", mode="before")
    @classmethod
    def _accept_comma_separated(cls, value: object) -> object:
        return _split_csv(value)

    @field_validator("filename_format")
    @classmethod
    def _known_placeholders(cls, value: str) -> str:
        try:
            value.format(kind="kind", version="v1", group="group", fullgroup="group.example.com")
        except (AttributeError, KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"filename format {value!r} is invalid, use only {{kind}}, {{version}}, {{group}}, {{fullgroup}}: {e!r}"
            ) from e
        return value

    def parsed_env(self) -> dict[str, str]:
        """Parse ``key:value`` env pairs for Flux substitution.

        The pair is split on the first colon so values may contain
        colons (URLs, ports).

        Raises:
            ConfigurationError: If a pair has no colon or an empty key.
        """
        result: dict[str, str] = {}
        for pair in self.env:
            key, sep, value = pair.partition(":")
            if not sep or not key.strip():
                raise ConfigurationError(
                    f"Invalid env variable format, must be in the form <key>:<value>: {pair}"
                )
            result[key.strip()] = value
        return result
