# metadata_harness/conversion.py
# SPDX-License-Identifier: Apache-2.0

"""
Version-conversion checker.

Forces the latest-version projection of decoded metadata. Sources older than
the unified type lookup (v14) additionally get a uniqueness scan over every
type reachable from the projection:

  • collisions: two lookup entries share a name (the deduplication identity)
                but carry different definitions
  • unresolved: a storage item references a type the registry cannot resolve

``strict`` decides whether problems fail the check or are only logged; some
legacy fixtures carry benign duplication.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from metadata_harness.checks import NamedCheck
from metadata_harness.core.errors import ConversionError, HarnessError, attach_context
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.interfaces import (
    UNIFIED_LOOKUP_VERSION,
    Check,
    LatestView,
    Metadata,
)

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeCollision:
    name: str
    lookup_ids: Tuple[int, ...]
    definitions: Tuple[str, ...]

    def describe(self) -> str:
        ids = ", ".join(str(i) for i in self.lookup_ids)
        return f"{self.name} (lookup ids {ids}) has {len(self.definitions)} distinct definitions"


@dataclass
class UniquenessReport:
    scanned: int = 0
    collisions: List[TypeCollision] = field(default_factory=list)
    unresolved: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.collisions and not self.unresolved

    def summary(self) -> str:
        lines = [f"uniqueness scan over {self.scanned} types found problems:"]
        lines.extend(f"  collision: {c.describe()}" for c in self.collisions)
        lines.extend(f"  unresolved: {ref}: {reason}" for ref, reason in sorted(self.unresolved.items()))
        return "\n".join(lines)


def _identity(definition: Any) -> str:
    if isinstance(definition, str):
        return definition
    return json.dumps(definition, sort_keys=True, default=str)


def scan_unique_types(schema: SchemaContext, metadata: Metadata, latest: LatestView) -> UniquenessReport:
    """Walk lookup entries and storage references of ``latest``."""
    report = UniquenessReport()

    seen: Dict[str, List[Tuple[int, str]]] = {}
    for entry in latest.type_entries():
        report.scanned += 1
        seen.setdefault(entry.name, []).append((entry.lookup_id, _identity(entry.definition)))

    for name, entries in seen.items():
        definitions = tuple(dict.fromkeys(d for _, d in entries))
        if len(definitions) > 1:
            report.collisions.append(
                TypeCollision(name, tuple(i for i, _ in entries), definitions)
            )

    for pallet in latest.pallets:
        if pallet.storage is None:
            continue
        for item in pallet.storage.items:
            ref = str(item.type_ref)
            if ref in report.unresolved:
                continue
            try:
                schema.resolve_type(metadata, item.type_ref)
            except HarnessError as exc:
                report.unresolved[ref] = str(exc)

    return report


def check_conversion(
    schema: SchemaContext,
    version: int,
    check: Check,
    *,
    strict: bool = True,
    scope: Tuple[str, ...] = (),
) -> NamedCheck:
    """One named check converting the fixture to the latest version."""

    def converts() -> None:
        metadata = schema.load(check.data)
        try:
            latest = metadata.as_latest
        except Exception as exc:
            err = ConversionError(
                f"v{metadata.version} could not be converted to latest: {exc}",
                details={"version": metadata.version},
            )
            attach_context(err, "conversion", version=version)
            raise err from exc

        if metadata.version >= UNIFIED_LOOKUP_VERSION:
            return

        report = scan_unique_types(schema, metadata, latest)
        if report.ok:
            return
        if strict:
            raise ConversionError(
                report.summary(),
                details={
                    "collisions": [c.name for c in report.collisions],
                    "unresolved": sorted(report.unresolved),
                },
            )
        LOG.warning("v%s: %s", metadata.version, report.summary())

    return NamedCheck(scope, f"converts v{version} to latest", converts)


__all__ = [
    "TypeCollision",
    "UniquenessReport",
    "scan_unique_types",
    "check_conversion",
]
