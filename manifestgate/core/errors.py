"""
Error taxonomy — every fatal condition of a validation run.

All errors stop the run at the point they are raised. There is no
partial-success mode: the first error wins and is reported as-is.
"""

from __future__ import annotations


class GateError(Exception):
    """Base class for all manifest-gate errors."""


class ParseError(GateError):
    """A CRD source locator is malformed or has too few path segments."""


class TransportError(GateError):
    """A network fetch or repository clone failed."""


class FormatError(GateError):
    """Archive identification or extraction failed for a reason other than 'no match'."""


class ConfigurationError(GateError):
    """Invalid settings, env pair, or missing required tool."""


class ValidationFailure(GateError):
    """The validator rejected a manifest.

    Carries the offending path and the validator's message so callers
    can surface both.
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"Validation failed for {path}: {message}")
        self.path = path
        self.message = message
