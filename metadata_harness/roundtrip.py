# metadata_harness/roundtrip.py
# SPDX-License-Identifier: Apache-2.0

"""
Round-trip verifier.

Checks produced for one fixture:

  • serializes to bytes in the same form as retrieved
        decode(data).to_bytes() == data, byte for byte
  • can construct from a re-serialized form
        registered but skipped; implied by the check above
  • can construct from the calls-only projection
        decode(decode(data).as_calls_only.to_bytes()) does not raise
"""

from __future__ import annotations

from typing import List, Tuple

from metadata_harness.checks import NamedCheck, assert_bytes_equal
from metadata_harness.core.errors import FidelityError, StructuralDecodeError
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.interfaces import Check


def verify_round_trip(
    schema: SchemaContext,
    check: Check,
    *,
    scope: Tuple[str, ...] = (),
) -> List[NamedCheck]:
    data = check.data

    def reencodes_identically() -> None:
        try:
            metadata = schema.decode_metadata(data)
        except StructuralDecodeError as exc:
            raise FidelityError(
                f"re-encoded bytes do not match input: decode failed for {len(data)} input bytes: {exc}",
                details={"expected_len": len(data), "actual_len": 0, "missing": len(data)},
            ) from exc
        assert_bytes_equal(metadata.to_bytes(), data, what="re-encoded bytes differ from input")

    def reconstructs_from_reserialized() -> None:
        schema.decode_metadata(schema.decode_metadata(data).to_bytes())

    def calls_only_decodes() -> None:
        # as used by signing-only consumers
        reduced = schema.decode_metadata(data).as_calls_only
        schema.decode_metadata(reduced.to_bytes())

    return [
        NamedCheck(scope, "serializes to bytes in the same form as retrieved", reencodes_identically),
        NamedCheck(
            scope,
            "can construct from a re-serialized form",
            reconstructs_from_reserialized,
            skip_reason="implied by a byte-exact re-encode",
        ),
        NamedCheck(scope, "can construct from the calls-only projection", calls_only_decodes),
    ]


__all__ = ["verify_round_trip"]
