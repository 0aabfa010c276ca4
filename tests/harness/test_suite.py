# SPDX-License-Identifier: Apache-2.0
"""
End-to-end suite over the reference codec.

Asserts:
  • registration order is round trip, golden fixtures, conversion, defaults
  • one fresh registry per fixture
  • a first run in a non-automated context creates the golden fixtures
  • a second run matches them; enforcing runs fail on missing fixtures
  • one broken fixture does not affect the checks of another
"""

import json

import pytest

from metadata_harness import (
    Check,
    FixtureKind,
    MemoryFixtureStore,
    StrictMode,
    build_suite,
    run_suite,
)
from metadata_harness.mock import MockTypeRegistry, build_metadata, pallet, sample_metadata, storage_item

pytestmark = pytest.mark.integration


class CountingFactory:
    def __init__(self) -> None:
        self.registries = []

    def __call__(self) -> MockTypeRegistry:
        registry = MockTypeRegistry()
        self.registries.append(registry)
        return registry


def test_v9_registration_order(store, v9_check):
    suite = build_suite(9, {"relevant-chain": v9_check}, MockTypeRegistry, store=store)

    assert [c.description for c in suite] == [
        "MetadataV9 > relevant-chain > serializes to bytes in the same form as retrieved",
        "MetadataV9 > relevant-chain > can construct from a re-serialized form",
        "MetadataV9 > relevant-chain > can construct from the calls-only projection",
        "MetadataV9 > relevant-chain > decodes latest metadata properly",
        "MetadataV9 > relevant-chain > converts v9 to latest",
        "MetadataV9 > relevant-chain > storage with default values > system.account: AccountInfo",
        "MetadataV9 > relevant-chain > storage with default values > system.blockHash: Bytes",
        "MetadataV9 > relevant-chain > storage with default values > system.extrinsicCount: Option<u32>",
        "MetadataV9 > relevant-chain > storage with default values > system.upgradedToU32RefCount: bool",
        "MetadataV9 > relevant-chain > storage with default values > transactionPayment.nextFeeMultiplier: u64",
    ]


def test_v9_first_run_creates_golden_fixture(store, v9_check):
    report = run_suite(9, {"relevant-chain": v9_check}, MockTypeRegistry, store=store)

    assert report.success, [r.message for r in report.failures()]
    assert (report.passed, report.skipped) == (9, 1)

    path = store.root / "v9" / "relevant-chain-json.json"
    assert path.exists()
    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert text.startswith("{\n  ")
    assert json.loads(text)["metadata"]["v9"]["modules"][1]["name"] == "TransactionPayment"


def test_second_run_matches_in_enforce_mode(store, v14_check):
    first = run_suite(14, {"relevant-chain": v14_check}, MockTypeRegistry, store=store)
    second = run_suite(
        14, {"relevant-chain": v14_check}, MockTypeRegistry, store=store, mode=StrictMode.ENFORCE
    )

    assert first.success
    assert second.success
    assert store.path_for(14, "relevant-chain", FixtureKind.JSON).exists()
    assert store.path_for(14, "relevant-chain", FixtureKind.TYPES).exists()


def test_enforcing_without_fixtures_fails_only_reconciliation(store, v14_check):
    report = run_suite(
        14, {"relevant-chain": v14_check}, MockTypeRegistry, store=store, mode=StrictMode.ENFORCE
    )

    failed = [r.description.rsplit(" > ", 1)[-1] for r in report.failures()]
    assert failed == ["decodes latest metadata properly", "decodes latest types correctly"]
    assert report.passed == 8


def test_ci_signal_enforces_by_default(store, v9_check, monkeypatch):
    monkeypatch.setenv("CI", "true")

    report = run_suite(9, {"relevant-chain": v9_check}, MockTypeRegistry, store=store)

    assert report.failed == 1
    assert not store.path_for(9, "relevant-chain", FixtureKind.JSON).exists()


def test_fresh_registry_per_fixture(v9_check):
    factory = CountingFactory()
    checks = {"a": v9_check, "b": Check(sample_metadata(9).to_bytes())}

    report = run_suite(9, checks, factory, store=MemoryFixtureStore())

    assert report.success
    assert len(factory.registries) == 2
    assert factory.registries[0] is not factory.registries[1]
    assert all(r.active_schema is not None for r in factory.registries)


def test_broken_fixture_is_isolated(v9_check):
    store = MemoryFixtureStore()
    checks = {"broken": Check(v9_check.data[:-3]), "healthy": v9_check}

    report = run_suite(9, checks, MockTypeRegistry, store=store)

    healthy = [r for r in report.results if " > healthy > " in r.description]
    broken = [r for r in report.results if " > broken > " in r.description]
    assert all(r.ok for r in healthy)
    assert broken and all(not r.ok for r in broken if r.status.value != "skipped")
    assert store.read(9, "healthy", FixtureKind.JSON) is not None
    assert store.read(9, "broken", FixtureKind.JSON) is None


def test_exempted_failure_does_not_fail_suite():
    md = build_metadata(9, pallets=[pallet("System", [storage_item("Killed", "bool", b"\x07")])])
    checks = {"legacy": Check(md.to_bytes(), fails=["system.killed"])}

    report = run_suite(9, checks, MockTypeRegistry, store=MemoryFixtureStore())

    assert report.success
