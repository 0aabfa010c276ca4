# SPDX-License-Identifier: Apache-2.0
"""
Pytest fixtures for the metadata conformance harness.

The registry implementation under test is resolved from
METADATA_HARNESS_REGISTRY ('package.module:factory'), defaulting to the
reference codec in `metadata_harness.mock`.

Every test runs with the automated-context signals (GITHUB_REPOSITORY, CI)
and METADATA_HARNESS_MODE removed from the environment, so fixture handling
only enforces when a test asks for it.
"""

from __future__ import annotations

import os
from typing import Callable

import pytest

from metadata_harness import Check, JsonFixtureStore, SchemaContext, TypeRegistry
from metadata_harness.core.config import CI_ENV_SIGNALS, DEFAULT_REGISTRY, MODE_ENV, REGISTRY_ENV
from metadata_harness.loader import load_registry_factory
from metadata_harness.mock import sample_metadata


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (*CI_ENV_SIGNALS, MODE_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def registry_factory() -> Callable[[], TypeRegistry]:
    """Registry factory resolved from the environment (or the reference codec)."""
    return load_registry_factory(os.getenv(REGISTRY_ENV, DEFAULT_REGISTRY))


@pytest.fixture
def schema(registry_factory):
    with SchemaContext(registry_factory()) as ctx:
        yield ctx


@pytest.fixture
def store(tmp_path) -> JsonFixtureStore:
    return JsonFixtureStore(tmp_path / "fixtures")


@pytest.fixture
def v9_check() -> Check:
    return Check(sample_metadata(9).to_bytes())


@pytest.fixture
def v14_check() -> Check:
    return Check(sample_metadata(14).to_bytes())
