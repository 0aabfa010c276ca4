# SPDX-License-Identifier: Apache-2.0
"""
Round-trip verifier.

Asserts:
  • decode → encode reproduces the input byte for byte
  • the re-serialized construction check is registered but skipped
  • the calls-only projection re-encodes into decodable metadata
  • truncated or padded input fails the re-encode check with a FidelityError
"""

import pytest

from metadata_harness import Check, CheckStatus, FidelityError, StructuralDecodeError, run_checks
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.roundtrip import verify_round_trip
from tests.utils.check_helpers import ProxyingRegistry, by_name, names

REENCODE = "serializes to bytes in the same form as retrieved"
RESERIALIZED = "can construct from a re-serialized form"
CALLS_ONLY = "can construct from the calls-only projection"


class _GarbageProjection:
    def to_bytes(self) -> bytes:
        return b"junk"


def test_registers_three_checks_in_order(schema, v9_check):
    checks = verify_round_trip(schema, v9_check, scope=("MetadataV9", "sample"))

    assert names(checks) == [REENCODE, RESERIALIZED, CALLS_ONLY]
    assert checks[0].description == f"MetadataV9 > sample > {REENCODE}"


def test_valid_metadata_round_trips(schema, v9_check):
    report = run_checks(verify_round_trip(schema, v9_check))

    assert report.success
    assert [r.status for r in report.results] == [
        CheckStatus.PASSED,
        CheckStatus.SKIPPED,
        CheckStatus.PASSED,
    ]


def test_reserialized_check_is_skipped_with_reason(schema, v9_check):
    check = by_name(verify_round_trip(schema, v9_check), RESERIALIZED)

    assert check.skipped
    assert "implied" in check.skip_reason


def test_truncated_data_fails_reencode(schema, v9_check):
    truncated = Check(v9_check.data[:-3])
    check = by_name(verify_round_trip(schema, truncated), REENCODE)

    with pytest.raises(FidelityError, match="re-encoded bytes do not match input") as exc_info:
        check.run()
    assert isinstance(exc_info.value.__cause__, StructuralDecodeError)
    assert f"decode failed for {len(truncated.data)} input bytes" in str(exc_info.value)
    assert exc_info.value.details["expected_len"] == len(truncated.data)
    assert exc_info.value.details["missing"] == len(truncated.data)


def test_trailing_bytes_fail_reencode_with_byte_delta(schema, v9_check):
    padded = Check(v9_check.data + b"\x00\x00")
    check = by_name(verify_round_trip(schema, padded), REENCODE)

    with pytest.raises(FidelityError, match=r"\(2 bytes missing\)") as exc_info:
        check.run()
    assert exc_info.value.details["expected_len"] == len(padded.data)
    assert exc_info.value.details["actual_len"] == len(v9_check.data)


def test_truncation_does_not_stop_sibling_checks(schema, v9_check):
    report = run_checks(verify_round_trip(schema, Check(v9_check.data[:-3])))

    assert report.failed == 2  # re-encode and calls-only both need a decode
    assert report.skipped == 1


def test_calls_only_projection_drops_storage(registry_factory, v9_check):
    reduced = registry_factory().create_metadata(v9_check.data).as_calls_only

    assert all(p.storage is None for p in reduced.pallets)
    assert [p.calls for p in reduced.pallets][0] == ("remark", "set_code")


def test_undecodable_calls_only_projection_fails(v9_check):
    schema = SchemaContext(ProxyingRegistry(as_calls_only=_GarbageProjection()))
    checks = verify_round_trip(schema, v9_check)

    by_name(checks, REENCODE).run()
    with pytest.raises(StructuralDecodeError, match="bad magic number"):
        by_name(checks, CALLS_ONLY).run()
