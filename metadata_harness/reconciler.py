# metadata_harness/reconciler.py
# SPDX-License-Identifier: Apache-2.0

"""
Golden-fixture reconciler.

Decodes metadata into its structural tree, strips the versioned type lookup
(``metadata.v<version>.lookup``) and compares the rest with the stored golden
fixture. From v14 the lookup is compared on its own against the ``types``
fixture.

On mismatch:

  StrictMode.ENFORCE    raise FixtureMismatchError (automated runs)
  StrictMode.RECONCILE  log the mismatch and overwrite the stored fixture

With ``mode=None`` the mode is resolved from the environment at each
mismatch (see `StrictMode.from_env`).
"""

from __future__ import annotations

import copy
import difflib
import enum
import json
import logging
from typing import Any, List, Optional, Tuple

from metadata_harness.checks import NamedCheck
from metadata_harness.core.config import StrictMode
from metadata_harness.core.errors import (
    FixtureMismatchError,
    FixtureStoreError,
    attach_context,
)
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.fixtures import FixtureKind, FixtureStore, canonical_text
from metadata_harness.interfaces import UNIFIED_LOOKUP_VERSION, Check, Metadata

LOG = logging.getLogger(__name__)

MAX_DIFF_LINES = 60


class ReconcileOutcome(enum.Enum):
    MATCHED = "matched"
    CREATED = "created"
    UPDATED = "updated"


def normalize_tree(tree: Any) -> Any:
    """JSON round-trip so produced trees compare equal to stored ones."""
    return json.loads(canonical_text(tree))


def strip_lookup(tree: Any, version: int) -> Any:
    """Remove ``metadata.v<version>.lookup`` in place and return the tree."""
    body = tree.get("metadata", {}).get(f"v{version}") if isinstance(tree, dict) else None
    if isinstance(body, dict):
        body.pop("lookup", None)
    return tree


def structural_tree(metadata: Metadata) -> Any:
    tree = normalize_tree(copy.deepcopy(metadata.to_json()))
    return strip_lookup(tree, metadata.version)


def describe_mismatch(expected: Any, actual: Any, label: str) -> str:
    if expected is None:
        return f"{label}: no stored fixture"
    diff = list(
        difflib.unified_diff(
            canonical_text(expected).splitlines(),
            canonical_text(actual).splitlines(),
            fromfile=f"{label} (stored)",
            tofile=f"{label} (decoded)",
            lineterm="",
        )
    )
    if len(diff) > MAX_DIFF_LINES:
        hidden = len(diff) - MAX_DIFF_LINES
        diff = diff[:MAX_DIFF_LINES] + [f"... {hidden} more diff lines"]
    return f"{label}: decoded tree does not match stored fixture\n" + "\n".join(diff)


def compare_or_reconcile(
    store: FixtureStore,
    version: int,
    name: str,
    kind: FixtureKind,
    tree: Any,
    *,
    mode: Optional[StrictMode] = None,
) -> ReconcileOutcome:
    """
    Compare ``tree`` with the stored fixture, enforcing or reconciling on
    mismatch. Returns what happened to the stored fixture.
    """
    label = f"v{version}/{name}-{kind.value}"
    produced = normalize_tree(tree)

    try:
        stored = store.read(version, name, kind)
        unreadable: Optional[FixtureStoreError] = None
    except FixtureStoreError as exc:
        stored, unreadable = None, exc

    if unreadable is None and stored is not None and stored == produced:
        return ReconcileOutcome.MATCHED

    if unreadable is not None:
        message = f"{label}: stored fixture unreadable: {unreadable}"
    else:
        message = describe_mismatch(stored, produced, label)
    error = FixtureMismatchError(
        message,
        details={"version": version, "name": name, "kind": kind.value, "stored": stored is not None},
    )

    effective = mode if mode is not None else StrictMode.from_env()
    if effective is StrictMode.ENFORCE:
        attach_context(error, "reconciler", fixture=name, version=version, kind=kind.value)
        if unreadable is not None:
            raise error from unreadable
        raise error

    LOG.error("%s", error)
    store.write(version, name, kind, produced)
    outcome = ReconcileOutcome.CREATED if stored is None and unreadable is None else ReconcileOutcome.UPDATED
    LOG.info("reconciled fixture %s (%s)", label, outcome.value)
    return outcome


def reconcile_fixtures(
    schema: SchemaContext,
    fixture_name: str,
    version: int,
    check: Check,
    *,
    store: FixtureStore,
    mode: Optional[StrictMode] = None,
    scope: Tuple[str, ...] = (),
) -> List[NamedCheck]:
    """Named checks comparing decoded trees against golden fixtures."""

    def decodes_latest() -> ReconcileOutcome:
        metadata = schema.load(check.data)
        if metadata.version != version:
            raise FixtureMismatchError(
                f"expected metadata v{version}, decoded v{metadata.version}",
                details={"expected": version, "actual": metadata.version},
            )
        return compare_or_reconcile(
            store, version, fixture_name, FixtureKind.JSON, structural_tree(metadata), mode=mode
        )

    def decodes_types() -> ReconcileOutcome:
        metadata = schema.load(check.data)
        tree = metadata.as_latest.lookup_json()
        return compare_or_reconcile(
            store, version, fixture_name, FixtureKind.TYPES, tree, mode=mode
        )

    checks: List[NamedCheck] = [NamedCheck(scope, "decodes latest metadata properly", decodes_latest)]
    if version >= UNIFIED_LOOKUP_VERSION:
        checks.append(NamedCheck(scope, "decodes latest types correctly", decodes_types))
    return checks


__all__ = [
    "ReconcileOutcome",
    "strip_lookup",
    "structural_tree",
    "compare_or_reconcile",
    "reconcile_fixtures",
]
