# metadata_harness/core/errors.py
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for the metadata conformance harness.

Every failure the harness raises on its own behalf is a subclass of
`HarnessError`. Each carries:

    message:
        Human-readable description, safe for logs and check reports.
    code:
        Upper-snake-case machine code; derived from the class when omitted.
    details:
        Additional JSON-safe context (byte lengths, fixture keys, ...).

Errors raised by the codec / registry collaborator are never swallowed at the
decode layer: they are wrapped into `StructuralDecodeError` with
`raise ... from exc` so the original traceback stays reachable.

Propagation policy
------------------
* Structural decode and fidelity errors raised while validating storage
  defaults are caught and classified (tolerated vs fatal) by
  `metadata_harness.defaults`.
* Every other class is fatal for the named check that raised it.

Context attachment
------------------
`attach_context` records where a failure happened (component, fixture,
location, ...) as an exception attribute without changing the exception
type or message:

    try:
        schema.decode_value(metadata, strategy, fallback, is_optional=True)
    except Exception as exc:
        attach_context(exc, "defaults", location=location.display)
        raise
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, MutableMapping, Optional

LOG = logging.getLogger(__name__)

CONTEXT_ATTR = "__harness_context__"


class HarnessError(Exception):
    """Base exception for all harness failures."""

    default_code = "HARNESS_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = dict(details or {})

    def __str__(self) -> str:
        return self.message or self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation used by check reports."""
        return {
            "error": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


class StructuralDecodeError(HarnessError):
    """
    Raw bytes do not conform to the declared / resolved type.

    Raised when the collaborator's decode call fails, with the collaborator
    exception chained as ``__cause__``.
    """

    default_code = "STRUCTURAL_DECODE"


class FidelityError(HarnessError):
    """
    Decoded-then-reencoded bytes differ from the source bytes.

    ``details`` carries ``expected_len``, ``actual_len`` and ``missing``
    (expected minus actual, in bytes).
    """

    default_code = "FIDELITY_MISMATCH"


class ConversionError(HarnessError):
    """
    Latest-version projection could not be materialised, or the uniqueness
    scan found colliding or unresolvable types.
    """

    default_code = "CONVERSION_FAILED"


class FixtureMismatchError(HarnessError):
    """Structural tree differs from the stored golden fixture."""

    default_code = "FIXTURE_MISMATCH"


class FixtureStoreError(HarnessError):
    """A stored golden fixture exists but cannot be read as JSON."""

    default_code = "FIXTURE_STORE"


class DefaultValueError(HarnessError):
    """A storage fallback failed validation and no exemption applies."""

    default_code = "DEFAULT_VALUE"


class CheckDocumentError(HarnessError):
    """A check document does not match the expected JSON structure."""

    default_code = "CHECK_DOCUMENT"


class RegistryLoadError(HarnessError):
    """A 'package.module:factory' registry spec could not be loaded."""

    default_code = "REGISTRY_LOAD"


def attach_context(exc: BaseException, component: str, **context: Any) -> None:
    """
    Attach harness context to an exception.

    Contexts from repeated calls are merged; the first ``component`` wins.
    Attachment failures are logged and never mask the original exception.
    """
    try:
        existing = getattr(exc, CONTEXT_ATTR, None)
        merged: MutableMapping[str, Any] = dict(existing) if isinstance(existing, Mapping) else {}
        merged.setdefault("component", component)
        for key, value in context.items():
            if value is not None:
                merged[key] = value
        setattr(exc, CONTEXT_ATTR, merged)
    except Exception:  # pragma: no cover - exceptions with __slots__
        LOG.debug("could not attach harness context to %r", exc, exc_info=True)


def get_context(exc: BaseException) -> Dict[str, Any]:
    """Return the harness context attached to ``exc`` (empty if none)."""
    ctx = getattr(exc, CONTEXT_ATTR, None)
    return dict(ctx) if isinstance(ctx, Mapping) else {}


__all__ = [
    "HarnessError",
    "StructuralDecodeError",
    "FidelityError",
    "ConversionError",
    "FixtureMismatchError",
    "FixtureStoreError",
    "DefaultValueError",
    "CheckDocumentError",
    "RegistryLoadError",
    "attach_context",
    "get_context",
]
