# SPDX-License-Identifier: Apache-2.0
"""
Reference codec.

Asserts:
  • the sample encodes and decodes to an equal model
  • v14+ trees carry a lookup, older trees carry modules
  • malformed input raises MockCodecError
"""

import pytest

from metadata_harness.mock import MockCodecError, MockMetadata, MockTypeRegistry, sample_metadata


@pytest.mark.parametrize("version", [9, 13, 14, 15])
def test_sample_decodes_to_equal_model(version):
    md = sample_metadata(version)

    assert MockMetadata.decode(md.to_bytes()) == md


def test_legacy_tree_shape():
    tree = sample_metadata(9).to_json()

    body = tree["metadata"]["v9"]
    assert tree["magicNumber"] == int.from_bytes(b"meta", "little")
    assert [m["name"] for m in body["modules"]] == ["System", "TransactionPayment", "Utility"]
    assert body["modules"][0]["storage"]["items"][2] == {
        "name": "ExtrinsicCount",
        "modifier": "Optional",
        "type": "u32",
        "fallback": "0x00",
    }
    assert body["modules"][2]["storage"] is None


def test_unified_tree_shape():
    body = sample_metadata(14).to_json()["metadata"]["v14"]

    assert body["lookup"]["types"][1] == {"id": 1, "name": "Balance", "def": "u64"}
    assert "modules" not in body


@pytest.mark.parametrize(
    "data, fragment",
    [
        (b"", "unexpected end of input"),
        (b"nope\x09\x00\x00", "bad magic number"),
        (b"meta\x08\x00\x00", "unsupported metadata version 8"),
        (b"meta\x10\x00\x00", "unsupported metadata version 16"),
        (b"meta\x09\x01\x01A\x02", "invalid storage flag 2"),
    ],
)
def test_malformed_input(data, fragment):
    with pytest.raises(MockCodecError, match=fragment):
        MockMetadata.decode(data)


def test_bool_is_strict():
    registry = MockTypeRegistry()
    strategy = registry.resolve_type("bool")

    assert registry.decode_value(strategy, b"\x01").value is True
    with pytest.raises(MockCodecError, match="invalid bool byte 0x02"):
        registry.decode_value(strategy, b"\x02")


def test_alias_needs_active_schema():
    registry = MockTypeRegistry()

    with pytest.raises(MockCodecError, match="no active schema"):
        registry.resolve_type("AccountInfo")

    registry.set_active_schema(sample_metadata(9))
    assert repr(registry.resolve_type("AccountInfo")) == "u32"
    assert repr(registry.resolve_type("Option<Balance>")) == "Option<u64>"
