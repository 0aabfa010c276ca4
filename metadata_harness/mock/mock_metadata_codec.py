# metadata_harness/mock/mock_metadata_codec.py
# SPDX-License-Identifier: Apache-2.0

"""
Reference codec and type registry for exercising the harness.

Implements the collaborator Protocols of `metadata_harness.interfaces` over a
small, self-describing binary layout. It is a test double: deterministic,
free of third-party dependencies and just rich enough to exercise every harness path
(versioned trees, v14 lookup, calls-only projection, optional storage items,
aliases, collisions, truncated input).

Wire layout (all lengths and counts are one unsigned byte)
----------------------------------------------------------
    magic "meta" | version
    pallet count, per pallet:
        name | has_storage (0/1)
        [item count, per item: name | modifier (0 Optional, 1 Default) | type | fallback]
        call count, per call: name
    type count, per type: name | definition

    text / blob = length byte + raw bytes (text is UTF-8)

Trailing bytes after the type table are ignored by the decoder.

Value types
-----------
    u8 u16 u32 u64   little-endian unsigned integers
    bool             0x00 / 0x01
    Bytes            length byte + raw bytes
    Text             length byte + UTF-8
    Option<T>        0x00 (None) or 0x01 + T
    <alias>          any name in the metadata type table, resolved recursively
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from metadata_harness.interfaces import UNIFIED_LOOKUP_VERSION

MAGIC = b"meta"
MIN_VERSION = 9
LATEST_VERSION = 15

MODIFIER_OPTIONAL = 0
MODIFIER_DEFAULT = 1

_OPTION_RE = re.compile(r"^Option<(.+)>$")
_UINT_BITS = {"u8": 8, "u16": 16, "u32": 32, "u64": 64}
MAX_ALIAS_DEPTH = 32


class MockCodecError(ValueError):
    """Raised for any malformed input or unknown type."""


# =============================================================================
# Byte helpers
# =============================================================================

class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, n: int) -> bytes:
        if n > self.remaining:
            raise MockCodecError(
                f"unexpected end of input: need {n} bytes at offset {self._pos}, have {self.remaining}"
            )
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def blob(self) -> bytes:
        return self.take(self.u8())

    def text(self) -> str:
        raw = self.blob()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MockCodecError(f"invalid UTF-8 text: {exc}") from exc


def _blob(raw: bytes) -> bytes:
    if len(raw) > 0xFF:
        raise MockCodecError(f"value too long for a length byte: {len(raw)}")
    return bytes([len(raw)]) + raw


def _text(value: str) -> bytes:
    return _blob(value.encode("utf-8"))


def _count(n: int) -> bytes:
    if n > 0xFF:
        raise MockCodecError(f"too many entries for a count byte: {n}")
    return bytes([n])


# =============================================================================
# Metadata model
# =============================================================================

@dataclass(frozen=True)
class MockStorageItem:
    name: str
    type_ref: str
    fallback: bytes = b""
    is_optional: bool = False

    @property
    def modifier(self) -> str:
        return "Optional" if self.is_optional else "Default"

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "modifier": self.modifier,
            "type": self.type_ref,
            "fallback": "0x" + self.fallback.hex(),
        }


@dataclass(frozen=True)
class MockStorage:
    items: Tuple[MockStorageItem, ...] = ()


@dataclass(frozen=True)
class MockPallet:
    name: str
    storage: Optional[MockStorage] = None
    calls: Tuple[str, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        storage = None
        if self.storage is not None:
            storage = {"items": [item.to_json() for item in self.storage.items]}
        return {"name": self.name, "storage": storage, "calls": list(self.calls)}


@dataclass(frozen=True)
class MockTypeDef:
    name: str
    definition: str


@dataclass(frozen=True)
class LookupEntry:
    lookup_id: int
    name: str
    definition: str

    def to_json(self) -> Dict[str, Any]:
        return {"id": self.lookup_id, "name": self.name, "def": self.definition}


@dataclass(frozen=True)
class MockLatestView:
    version: int
    pallets: Tuple[MockPallet, ...]
    lookup: Tuple[LookupEntry, ...]

    def lookup_json(self) -> List[Dict[str, Any]]:
        return [entry.to_json() for entry in self.lookup]

    def type_entries(self) -> Iterable[LookupEntry]:
        return iter(self.lookup)


@dataclass(frozen=True)
class MockMetadata:
    version: int
    pallets: Tuple[MockPallet, ...] = ()
    types: Tuple[MockTypeDef, ...] = ()
    magic: bytes = field(default=MAGIC, repr=False)

    @property
    def as_latest(self) -> MockLatestView:
        lookup = tuple(LookupEntry(i, t.name, t.definition) for i, t in enumerate(self.types))
        return MockLatestView(LATEST_VERSION, self.pallets, lookup)

    @property
    def as_calls_only(self) -> "MockMetadata":
        return replace(
            self,
            pallets=tuple(MockPallet(p.name, None, p.calls) for p in self.pallets),
        )

    def alias(self, name: str) -> Optional[str]:
        for entry in self.types:
            if entry.name == name:
                return entry.definition
        return None

    def to_bytes(self) -> bytes:
        out = bytearray(self.magic)
        out += bytes([self.version])
        out += _count(len(self.pallets))
        for pallet in self.pallets:
            out += _text(pallet.name)
            if pallet.storage is None:
                out += b"\x00"
            else:
                out += b"\x01"
                out += _count(len(pallet.storage.items))
                for item in pallet.storage.items:
                    out += _text(item.name)
                    out += bytes([MODIFIER_OPTIONAL if item.is_optional else MODIFIER_DEFAULT])
                    out += _text(item.type_ref)
                    out += _blob(item.fallback)
            out += _count(len(pallet.calls))
            for call in pallet.calls:
                out += _text(call)
        out += _count(len(self.types))
        for entry in self.types:
            out += _text(entry.name)
            out += _text(entry.definition)
        return bytes(out)

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()

    def to_json(self) -> Dict[str, Any]:
        pallets = [p.to_json() for p in self.pallets]
        if self.version >= UNIFIED_LOOKUP_VERSION:
            body: Dict[str, Any] = {
                "lookup": {"types": self.as_latest.lookup_json()},
                "pallets": pallets,
            }
        else:
            body = {
                "modules": pallets,
                "types": [{"name": t.name, "definition": t.definition} for t in self.types],
            }
        return {
            "magicNumber": int.from_bytes(self.magic, "little"),
            "metadata": {f"v{self.version}": body},
        }

    @classmethod
    def decode(cls, data: bytes) -> "MockMetadata":
        r = _Reader(data)
        magic = r.take(len(MAGIC))
        if magic != MAGIC:
            raise MockCodecError(f"bad magic number: 0x{magic.hex()}")
        version = r.u8()
        if not MIN_VERSION <= version <= LATEST_VERSION:
            raise MockCodecError(f"unsupported metadata version {version}")

        pallets = []
        for _ in range(r.u8()):
            name = r.text()
            has_storage = r.u8()
            storage = None
            if has_storage not in (0, 1):
                raise MockCodecError(f"invalid storage flag {has_storage} in pallet {name}")
            if has_storage:
                items = []
                for _ in range(r.u8()):
                    item_name = r.text()
                    modifier = r.u8()
                    if modifier not in (MODIFIER_OPTIONAL, MODIFIER_DEFAULT):
                        raise MockCodecError(f"invalid modifier {modifier} for {name}.{item_name}")
                    type_ref = r.text()
                    fallback = r.blob()
                    items.append(
                        MockStorageItem(item_name, type_ref, fallback, modifier == MODIFIER_OPTIONAL)
                    )
                storage = MockStorage(tuple(items))
            calls = tuple(r.text() for _ in range(r.u8()))
            pallets.append(MockPallet(name, storage, calls))

        types = tuple(MockTypeDef(r.text(), r.text()) for _ in range(r.u8()))
        return cls(version=version, pallets=tuple(pallets), types=types)


# =============================================================================
# Value strategies
# =============================================================================

class _Strategy:
    name = "?"

    def decode(self, r: _Reader) -> Any:
        raise NotImplementedError

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.name


class _UInt(_Strategy):
    def __init__(self, name: str, bits: int) -> None:
        self.name = name
        self.size = bits // 8

    def decode(self, r: _Reader) -> int:
        return int.from_bytes(r.take(self.size), "little")

    def encode(self, value: int) -> bytes:
        return int(value).to_bytes(self.size, "little")


class _Bool(_Strategy):
    name = "bool"

    def decode(self, r: _Reader) -> bool:
        raw = r.u8()
        if raw not in (0, 1):
            raise MockCodecError(f"invalid bool byte 0x{raw:02x}")
        return raw == 1

    def encode(self, value: bool) -> bytes:
        return b"\x01" if value else b"\x00"


class _Bytes(_Strategy):
    name = "Bytes"

    def decode(self, r: _Reader) -> bytes:
        return r.blob()

    def encode(self, value: bytes) -> bytes:
        return _blob(value)


class _Text(_Strategy):
    name = "Text"

    def decode(self, r: _Reader) -> str:
        return r.text()

    def encode(self, value: str) -> bytes:
        return _text(value)


class _Option(_Strategy):
    def __init__(self, inner: _Strategy) -> None:
        self.inner = inner
        self.name = f"Option<{inner.name}>"

    def decode(self, r: _Reader) -> Any:
        flag = r.u8()
        if flag == 0:
            return None
        if flag != 1:
            raise MockCodecError(f"invalid Option flag 0x{flag:02x}")
        return self.inner.decode(r)

    def encode(self, value: Any) -> bytes:
        if value is None:
            return b"\x00"
        return b"\x01" + self.inner.encode(value)


_PRIMITIVES: Dict[str, _Strategy] = {
    **{name: _UInt(name, bits) for name, bits in _UINT_BITS.items()},
    "bool": _Bool(),
    "Bytes": _Bytes(),
    "Text": _Text(),
}


@dataclass(frozen=True)
class MockInstance:
    strategy: _Strategy
    value: Any

    def to_bytes(self, full: bool = False) -> bytes:
        # No partial encodings in this layout; ``full`` is accepted for the interface.
        return self.strategy.encode(self.value)

    def to_json(self) -> Any:
        if isinstance(self.value, bytes):
            return "0x" + self.value.hex()
        return self.value


# =============================================================================
# Registry
# =============================================================================

class MockTypeRegistry:
    """TypeRegistry implementation over the mock layout."""

    def __init__(self) -> None:
        self._active: Optional[MockMetadata] = None
        self.bind_count = 0

    @property
    def active_schema(self) -> Optional[MockMetadata]:
        return self._active

    def create_metadata(self, data: bytes) -> MockMetadata:
        return MockMetadata.decode(data)

    def set_active_schema(self, metadata: MockMetadata) -> None:
        self._active = metadata
        self.bind_count += 1

    def type_name(self, type_ref: str, *, is_optional: bool = False) -> str:
        name = str(type_ref).strip()
        return f"Option<{name}>" if is_optional else name

    def resolve_type(self, type_ref: str) -> _Strategy:
        return self._resolve(str(type_ref).strip(), depth=0)

    def _resolve(self, name: str, depth: int) -> _Strategy:
        if depth > MAX_ALIAS_DEPTH:
            raise MockCodecError(f"alias chain too deep resolving {name}")
        option = _OPTION_RE.match(name)
        if option:
            return _Option(self._resolve(option.group(1).strip(), depth + 1))
        if name in _PRIMITIVES:
            return _PRIMITIVES[name]
        if self._active is None:
            raise MockCodecError(f"cannot resolve {name}: no active schema")
        target = self._active.alias(name)
        if target is None:
            raise MockCodecError(f"unknown type {name}")
        return self._resolve(target.strip(), depth + 1)

    def decode_value(self, strategy: _Strategy, data: bytes, *, is_optional: bool = False) -> MockInstance:
        effective = _Option(strategy) if is_optional else strategy
        value = effective.decode(_Reader(data))
        return MockInstance(effective, value)


# =============================================================================
# Builders
# =============================================================================

def storage_item(
    name: str,
    type_ref: str,
    fallback: bytes = b"",
    *,
    optional: bool = False,
) -> MockStorageItem:
    return MockStorageItem(name, type_ref, bytes(fallback), optional)


def pallet(
    name: str,
    items: Optional[Sequence[MockStorageItem]] = None,
    calls: Sequence[str] = (),
) -> MockPallet:
    storage = MockStorage(tuple(items)) if items is not None else None
    return MockPallet(name, storage, tuple(calls))


def build_metadata(
    version: int,
    pallets: Sequence[MockPallet] = (),
    types: Sequence[Tuple[str, str]] = (),
) -> MockMetadata:
    return MockMetadata(
        version=version,
        pallets=tuple(pallets),
        types=tuple(MockTypeDef(n, d) for n, d in types),
    )


def sample_metadata(version: int = 9) -> MockMetadata:
    """A small chain description with storage, optional items, aliases and calls."""
    return build_metadata(
        version,
        pallets=[
            pallet(
                "System",
                [
                    storage_item("Account", "AccountInfo", b"\x00\x00\x00\x00"),
                    storage_item("BlockHash", "Bytes", b"\x00"),
                    storage_item("ExtrinsicCount", "u32", b"\x00", optional=True),
                    storage_item("UpgradedToU32RefCount", "bool", b"\x00"),
                ],
                calls=["remark", "set_code"],
            ),
            pallet(
                "TransactionPayment",
                [storage_item("NextFeeMultiplier", "u64", (1).to_bytes(8, "little"))],
            ),
            pallet("Utility", None, calls=["batch"]),
        ],
        types=[("AccountInfo", "u32"), ("Balance", "u64")],
    )


__all__ = [
    "MAGIC",
    "LATEST_VERSION",
    "MockCodecError",
    "MockStorageItem",
    "MockStorage",
    "MockPallet",
    "MockTypeDef",
    "LookupEntry",
    "MockLatestView",
    "MockMetadata",
    "MockInstance",
    "MockTypeRegistry",
    "storage_item",
    "pallet",
    "build_metadata",
    "sample_metadata",
]
