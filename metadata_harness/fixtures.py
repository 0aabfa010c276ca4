# metadata_harness/fixtures.py
# SPDX-License-Identifier: Apache-2.0

"""
Golden fixture storage.

Fixtures are keyed by ``(version, name, kind)`` and stored one file per key:

    <root>/v<version>/<name>-<kind>.json

formatted as two-space indented JSON with a trailing newline, so regenerated
fixtures produce reviewable diffs.
"""

from __future__ import annotations

import enum
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union, runtime_checkable

from metadata_harness.core.errors import FixtureStoreError

LOG = logging.getLogger(__name__)


class FixtureKind(enum.Enum):
    JSON = "json"     # structural tree, lookup stripped
    TYPES = "types"   # latest type lookup (v14+)


@runtime_checkable
class FixtureStore(Protocol):
    def read(self, version: int, name: str, kind: FixtureKind) -> Optional[Any]: ...

    def write(self, version: int, name: str, kind: FixtureKind, tree: Any) -> None: ...


def canonical_text(tree: Any) -> str:
    """Indented text form used both on disk and for mismatch diffs."""
    return json.dumps(tree, indent=2, ensure_ascii=False, default=str) + "\n"


class JsonFixtureStore:
    """File-backed fixture store rooted at a directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"JsonFixtureStore(root={str(self.root)!r})"

    def path_for(self, version: int, name: str, kind: FixtureKind) -> Path:
        return self.root / f"v{version}" / f"{name}-{FixtureKind(kind).value}.json"

    def read(self, version: int, name: str, kind: FixtureKind) -> Optional[Any]:
        """Return the stored tree, or None when no fixture exists."""
        p = self.path_for(version, name, kind)
        if not p.exists():
            return None
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise FixtureStoreError(
                f"Invalid JSON in fixture: {p}: {e}",
                details={"path": str(p)},
            ) from e

    def write(self, version: int, name: str, kind: FixtureKind, tree: Any) -> None:
        p = self.path_for(version, name, kind)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(canonical_text(tree), encoding="utf-8")
        LOG.info("wrote fixture %s", p)


class MemoryFixtureStore:
    """In-memory store; handy for dry runs and tests."""

    def __init__(self) -> None:
        self.trees = {}

    def read(self, version: int, name: str, kind: FixtureKind) -> Optional[Any]:
        tree = self.trees.get((version, name, FixtureKind(kind)))
        return json.loads(canonical_text(tree)) if tree is not None else None

    def write(self, version: int, name: str, kind: FixtureKind, tree: Any) -> None:
        self.trees[(version, name, FixtureKind(kind))] = json.loads(canonical_text(tree))


__all__ = [
    "FixtureKind",
    "FixtureStore",
    "JsonFixtureStore",
    "MemoryFixtureStore",
    "canonical_text",
]
