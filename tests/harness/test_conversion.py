# SPDX-License-Identifier: Apache-2.0
"""
Version-conversion checker.

Asserts:
  • one check named "converts v<N> to latest" per fixture
  • pre-v14 sources are scanned for type collisions and unresolved references
  • strict mode fails on scan problems, lenient mode only warns
  • v14+ sources skip the scan
  • a failing latest projection surfaces as ConversionError
"""

import pytest

from metadata_harness import Check, ConversionError, run_checks
from metadata_harness.conversion import check_conversion, scan_unique_types
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.mock import MockTypeRegistry, build_metadata, pallet, storage_item
from tests.utils.check_helpers import ProxyingRegistry


def _colliding(version: int) -> Check:
    md = build_metadata(
        version,
        pallets=[pallet("Balances", [storage_item("TotalIssuance", "Balance", bytes(8))])],
        types=[("Balance", "u64"), ("Balance", "u128"), ("Index", "u32")],
    )
    return Check(md.to_bytes())


def _unresolvable(version: int) -> Check:
    md = build_metadata(
        version,
        pallets=[pallet("Staking", [storage_item("Ledger", "StakingLedger", b"\x00")])],
    )
    return Check(md.to_bytes())


def test_check_is_named_after_source_version(schema, v9_check):
    check = check_conversion(schema, 9, v9_check, scope=("MetadataV9", "sample"))

    assert check.name == "converts v9 to latest"
    assert check.description == "MetadataV9 > sample > converts v9 to latest"


def test_clean_legacy_metadata_converts(schema, v9_check):
    assert check_conversion(schema, 9, v9_check).run() is None


def test_collision_fails_in_strict_mode(schema):
    check = check_conversion(schema, 10, _colliding(10))

    with pytest.raises(ConversionError, match="Balance") as exc_info:
        check.run()
    assert exc_info.value.details["collisions"] == ["Balance"]
    assert exc_info.value.code == "CONVERSION_FAILED"


def test_collision_only_warns_when_lenient(schema, caplog):
    check = check_conversion(schema, 10, _colliding(10), strict=False)

    with caplog.at_level("WARNING", logger="metadata_harness.conversion"):
        check.run()
    assert "collision: Balance" in caplog.text


def test_unresolvable_storage_reference_is_reported(schema):
    with pytest.raises(ConversionError, match="unresolved: StakingLedger"):
        check_conversion(schema, 11, _unresolvable(11)).run()


def test_unified_lookup_sources_skip_scan(schema):
    assert check_conversion(schema, 14, _colliding(14)).run() is None
    assert check_conversion(schema, 15, _unresolvable(15)).run() is None


def test_failed_projection_raises_conversion_error(v9_check):
    schema = SchemaContext(ProxyingRegistry(as_latest=RuntimeError("no upgrade path")))

    with pytest.raises(ConversionError, match="no upgrade path") as exc_info:
        check_conversion(schema, 9, v9_check).run()
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_scan_report_counts_entries():
    registry = MockTypeRegistry()
    schema = SchemaContext(registry)
    metadata = schema.load(_colliding(9).data)

    report = scan_unique_types(schema, metadata, metadata.as_latest)

    assert report.scanned == 3
    assert not report.ok
    assert [c.name for c in report.collisions] == ["Balance"]
    assert report.collisions[0].lookup_ids == (0, 1)
    assert report.collisions[0].definitions == ("u64", "u128")
    assert report.unresolved == {}


def test_undecodable_input_fails_only_its_check(schema, v9_check):
    report = run_checks([
        check_conversion(schema, 9, Check(b"junk")),
        check_conversion(schema, 9, v9_check),
    ])

    assert report.failed == 1
    assert report.passed == 1
    assert "Unable to decode metadata" in report.results[0].message
