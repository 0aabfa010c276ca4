# metadata_harness/core/config.py
# SPDX-License-Identifier: Apache-2.0

"""
Harness configuration.

Two things are configurable:

* the fixture mode (`StrictMode`): whether a golden-fixture mismatch fails
  the check (ENFORCE) or rewrites the stored fixture (RECONCILE);
* defaults for the suite driver and CLI (fixture root, fallback round-trip
  check, exemption matching).

Environment
-----------
    GITHUB_REPOSITORY / CI                 automated context -> ENFORCE
    METADATA_HARNESS_MODE                  auto | enforce | reconcile
    METADATA_FIXTURES_ROOT                 golden fixture directory
    METADATA_HARNESS_FALLBACK_CHECK        true | false
    METADATA_HARNESS_SUBSTRING_EXEMPTIONS  true | false
    METADATA_HARNESS_REGISTRY              package.module:factory
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

# Presence of any of these marks an automated / continuous run.
CI_ENV_SIGNALS: Tuple[str, ...] = ("GITHUB_REPOSITORY", "CI")

MODE_ENV = "METADATA_HARNESS_MODE"
FIXTURES_ROOT_ENV = "METADATA_FIXTURES_ROOT"
FALLBACK_CHECK_ENV = "METADATA_HARNESS_FALLBACK_CHECK"
SUBSTRING_EXEMPTIONS_ENV = "METADATA_HARNESS_SUBSTRING_EXEMPTIONS"
REGISTRY_ENV = "METADATA_HARNESS_REGISTRY"

DEFAULT_REGISTRY = "metadata_harness.mock.mock_metadata_codec:MockTypeRegistry"

_FALSY = {"", "0", "false", "no", "off"}


def _truthy(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() not in _FALSY


class StrictMode(enum.Enum):
    """How golden-fixture mismatches are handled."""

    ENFORCE = "enforce"
    RECONCILE = "reconcile"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StrictMode":
        """ENFORCE when any automated-context signal is set, RECONCILE otherwise."""
        env = os.environ if environ is None else environ
        if any(_truthy(env.get(name)) for name in CI_ENV_SIGNALS):
            return cls.ENFORCE
        return cls.RECONCILE

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["StrictMode"]:
        """
        Parse a mode name. ``None``, ``""`` and ``"auto"`` return None, which
        callers treat as "resolve from the environment when needed".
        """
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized in ("", "auto"):
            return None
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown fixture mode '{value}'. Expected one of: auto, enforce, reconcile"
            ) from None


@dataclass(frozen=True)
class HarnessConfig:
    """Defaults for the suite driver and CLI."""

    fixtures_root: Path = Path("fixtures") / "metadata"
    mode: Optional[StrictMode] = None
    verify_fallback: bool = True
    substring_exemptions: bool = True
    registry_spec: str = DEFAULT_REGISTRY

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HarnessConfig":
        """Create configuration from environment variables."""
        env = os.environ if environ is None else environ
        root = env.get(FIXTURES_ROOT_ENV)
        return cls(
            fixtures_root=Path(root) if root else Path.cwd() / "fixtures" / "metadata",
            mode=StrictMode.parse(env.get(MODE_ENV)),
            verify_fallback=_truthy(env.get(FALLBACK_CHECK_ENV, "true")),
            substring_exemptions=_truthy(env.get(SUBSTRING_EXEMPTIONS_ENV, "true")),
            registry_spec=env.get(REGISTRY_ENV) or DEFAULT_REGISTRY,
        )


__all__ = [
    "CI_ENV_SIGNALS",
    "DEFAULT_REGISTRY",
    "REGISTRY_ENV",
    "StrictMode",
    "HarnessConfig",
]
