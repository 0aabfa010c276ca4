# metadata_harness/defaults.py
# SPDX-License-Identifier: Apache-2.0

"""
Default-value validator.

For every storage item of every module, the declared fallback bytes are
decoded with the item's own type, optionally re-encoded and compared with the
original bytes. One named check per item, named by its location
(``module.item: Type``).

Each item runs through three independent steps:

  1. check_fallback      decode (+ optional round trip); raises on failure
  2. classify_failure    pure: ToleratedFailure or FatalFailure
  3. the named check     asserts nothing escapes; tolerated failures only warn

A failure is fatal when ``strict`` is set and no exemption in ``check.fails``
matches the location. Exemptions are structured `Exemption(module, item)`
keys or legacy strings; legacy strings match as substrings of the location
when ``substring_exemptions`` is on, otherwise as ``module.item`` keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from metadata_harness.checks import NamedCheck, assert_bytes_equal, assert_no_raise
from metadata_harness.core.errors import DefaultValueError, attach_context
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.interfaces import (
    Check,
    Exemption,
    ExemptionPattern,
    Metadata,
    StorageItem,
    StorageLocation,
    string_camel_case,
)

LOG = logging.getLogger(__name__)

SCOPE_LABEL = "storage with default values"


# =============================================================================
# Outcomes
# =============================================================================

@dataclass(frozen=True)
class Ok:
    location: StorageLocation


@dataclass(frozen=True)
class ToleratedFailure:
    location: StorageLocation
    reason: str


@dataclass(frozen=True)
class FatalFailure:
    location: StorageLocation
    reason: str
    error: Optional[BaseException] = None


ValidationOutcome = Union[Ok, ToleratedFailure, FatalFailure]


# =============================================================================
# Exemptions
# =============================================================================

class ExemptionMatcher:
    """Decides whether a storage location is exempt from fatal failures."""

    def __init__(self, patterns: Iterable[ExemptionPattern] = (), *, substring: bool = True) -> None:
        self.patterns: Tuple[ExemptionPattern, ...] = tuple(patterns)
        self.substring = substring

    def __repr__(self) -> str:
        return f"ExemptionMatcher(patterns={self.patterns!r}, substring={self.substring})"

    @staticmethod
    def _as_key(pattern: str) -> Exemption:
        path = pattern.split(":", 1)[0].strip()
        module, _, item = path.partition(".")
        return Exemption(module, item or None)

    def _matches(self, pattern: ExemptionPattern, location: StorageLocation) -> bool:
        if isinstance(pattern, Exemption):
            return pattern.matches(location)
        if self.substring:
            return pattern in location.display
        return self._as_key(pattern).matches(location)

    def matches(self, location: StorageLocation) -> bool:
        return any(self._matches(p, location) for p in self.patterns)


# =============================================================================
# Steps
# =============================================================================

def check_fallback(
    schema: SchemaContext,
    metadata: Metadata,
    item: StorageItem,
    *,
    verify_round_trip: bool = False,
) -> None:
    """Decode ``item.fallback`` under its declared type; raise on failure."""
    strategy = schema.resolve_type(metadata, item.type_ref)
    instance = schema.decode_value(metadata, strategy, item.fallback, is_optional=item.is_optional)

    if verify_round_trip:
        assert_bytes_equal(instance.to_bytes(full=True), item.fallback, what="Fallback does not match")


def classify_failure(
    location: StorageLocation,
    error: BaseException,
    *,
    strict: bool,
    exemptions: ExemptionMatcher,
) -> Union[ToleratedFailure, FatalFailure]:
    reason = f"{location.display}:: {error}"
    if strict and not exemptions.matches(location):
        return FatalFailure(location, reason, error)
    return ToleratedFailure(location, reason)


def validate_storage_item(
    schema: SchemaContext,
    metadata: Metadata,
    item: StorageItem,
    location: StorageLocation,
    *,
    strict: bool = True,
    verify_round_trip: bool = False,
    exemptions: Optional[ExemptionMatcher] = None,
) -> ValidationOutcome:
    try:
        check_fallback(schema, metadata, item, verify_round_trip=verify_round_trip)
    except Exception as exc:
        return classify_failure(
            location, exc, strict=strict, exemptions=exemptions or ExemptionMatcher()
        )
    return Ok(location)


def apply_outcome(outcome: ValidationOutcome) -> None:
    """Warn on tolerated failures, raise DefaultValueError on fatal ones."""
    if isinstance(outcome, ToleratedFailure):
        LOG.warning("%s", outcome.reason)
    elif isinstance(outcome, FatalFailure):
        err = DefaultValueError(outcome.reason, details={"location": outcome.location.display})
        attach_context(err, "defaults", location=outcome.location.display)
        if outcome.error is not None:
            raise err from outcome.error
        raise err


# =============================================================================
# Named checks
# =============================================================================

def validate_defaults(
    schema: SchemaContext,
    check: Check,
    *,
    strict: bool = True,
    verify_round_trip: bool = False,
    substring_exemptions: bool = True,
    scope: Tuple[str, ...] = (),
) -> List[NamedCheck]:
    """One named check per storage item, in module then item declaration order."""
    scope = (*scope, SCOPE_LABEL)

    try:
        metadata = schema.decode_metadata(check.data)
        latest = metadata.as_latest
    except Exception as exc:
        failure = exc

        def reraise() -> None:
            raise failure

        return [NamedCheck(scope, "decodes metadata for storage enumeration", reraise)]

    exemptions = ExemptionMatcher(check.fails, substring=substring_exemptions)
    checks: List[NamedCheck] = []

    for pallet in latest.pallets:
        if pallet.storage is None:
            continue
        module = string_camel_case(pallet.name)
        for item in pallet.storage.items:
            naming_error: Optional[BaseException] = None
            try:
                type_name = schema.type_name(metadata, item.type_ref, is_optional=item.is_optional)
            except Exception as exc:
                # fall back to the raw reference; the check itself reports the failure
                naming_error = exc
                type_name = str(item.type_ref)
            location = StorageLocation(module, string_camel_case(item.name), type_name)

            def body(
                item: StorageItem = item,
                location: StorageLocation = location,
                naming_error: Optional[BaseException] = naming_error,
            ) -> None:
                if naming_error is not None:
                    outcome: ValidationOutcome = classify_failure(
                        location, naming_error, strict=strict, exemptions=exemptions
                    )
                else:
                    outcome = validate_storage_item(
                        schema,
                        metadata,
                        item,
                        location,
                        strict=strict,
                        verify_round_trip=verify_round_trip,
                        exemptions=exemptions,
                    )
                apply_outcome(outcome)

            checks.append(
                NamedCheck(
                    scope,
                    location.display,
                    lambda body=body, location=location: assert_no_raise(body, description=location.display),
                )
            )

    return checks


__all__ = [
    "Ok",
    "ToleratedFailure",
    "FatalFailure",
    "ValidationOutcome",
    "ExemptionMatcher",
    "check_fallback",
    "classify_failure",
    "validate_storage_item",
    "apply_outcome",
    "validate_defaults",
]
