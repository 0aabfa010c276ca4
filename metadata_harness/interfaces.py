# metadata_harness/interfaces.py
# SPDX-License-Identifier: Apache-2.0

"""
Collaborator interfaces and fixture descriptors.

The harness never decodes bytes itself. It drives a codec / type registry
through the Protocols below; any implementation with these shapes can be
tested (see `metadata_harness.mock.mock_metadata_codec` for a reference).

    TypeRegistry.create_metadata(data)           bytes -> Metadata
    TypeRegistry.set_active_schema(metadata)      bind decode context
    TypeRegistry.resolve_type(type_ref)           -> DecodeStrategy
    TypeRegistry.type_name(type_ref, is_optional) -> display name
    TypeRegistry.decode_value(strategy, data, is_optional=...) -> CodecInstance
    CodecInstance.to_bytes(full)                  -> bytes

Fixture inputs are plain frozen dataclasses: `Check` (encoded metadata plus
exemption patterns), `Exemption` (structured module/item key) and
`StorageLocation` (derived identifier of one storage item).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import (
    Any,
    Iterable,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

# Versions below this one have no unified type lookup table.
UNIFIED_LOOKUP_VERSION = 14

_WORD_SPLIT = re.compile(r"[^A-Za-z0-9]+")
_LEADING_CAPS = re.compile(r"[A-Z]+")


# =============================================================================
# Codec / registry collaborator
# =============================================================================

@runtime_checkable
class CodecInstance(Protocol):
    """A decoded value."""

    def to_bytes(self, full: bool = False) -> bytes: ...


@runtime_checkable
class StorageItem(Protocol):
    name: str
    is_optional: bool
    type_ref: Any
    fallback: bytes


@runtime_checkable
class StorageDescriptor(Protocol):
    items: Sequence[StorageItem]


@runtime_checkable
class Pallet(Protocol):
    name: str
    storage: Optional[StorageDescriptor]


@runtime_checkable
class TypeEntry(Protocol):
    """One entry of the latest-version type lookup."""

    lookup_id: int
    name: str
    definition: Any


@runtime_checkable
class LatestView(Protocol):
    pallets: Sequence[Pallet]

    def lookup_json(self) -> Any: ...

    def type_entries(self) -> Iterable[TypeEntry]: ...


@runtime_checkable
class Metadata(Protocol):
    version: int

    @property
    def as_latest(self) -> LatestView: ...

    @property
    def as_calls_only(self) -> "Metadata": ...

    def to_bytes(self) -> bytes: ...

    def to_json(self) -> Any: ...


@runtime_checkable
class TypeRegistry(Protocol):
    def create_metadata(self, data: bytes) -> Metadata: ...

    def set_active_schema(self, metadata: Metadata) -> None: ...

    def resolve_type(self, type_ref: Any) -> Any: ...

    def type_name(self, type_ref: Any, *, is_optional: bool = False) -> str: ...

    def decode_value(self, strategy: Any, data: bytes, *, is_optional: bool = False) -> CodecInstance: ...


# =============================================================================
# Fixture descriptors
# =============================================================================

def _lower_leading(word: str) -> str:
    # "EVMChainId" -> "evmChainId": a capital run keeps its last letter when a lowercase word follows
    run = _LEADING_CAPS.match(word)
    if run is None:
        return word
    end = run.end()
    if end > 1 and end < len(word) and word[end].islower():
        end -= 1
    return word[:end].lower() + word[end:]


def string_camel_case(value: str) -> str:
    """
    Lower-camel-case a module or item name.

        >>> string_camel_case("TransactionPayment")
        'transactionPayment'
        >>> string_camel_case("block_hash")
        'blockHash'
        >>> string_camel_case("BABE")
        'babe'
        >>> string_camel_case("XCMPQueue")
        'xcmpQueue'
    """
    words = [w for w in _WORD_SPLIT.split(value) if w]
    if not words:
        return ""
    parts = []
    for index, word in enumerate(words):
        if word.isupper():
            word = word.lower() if index == 0 else word.capitalize()
        elif index == 0:
            word = _lower_leading(word)
        else:
            word = word[0].upper() + word[1:]
        parts.append(word)
    return "".join(parts)


def _to_bytes(value: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        text = value[2:] if value[:2].lower() == "0x" else value
        try:
            return bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError(f"Check data is not valid hex: {exc}") from exc
    raise TypeError(f"Check data must be bytes or a hex string, got {type(value).__name__}")


@dataclass(frozen=True)
class Exemption:
    """
    Structured exemption key. ``item=None`` exempts the whole module.

    Names are compared in lower camel case, so ``Exemption("System", "BlockHash")``
    matches the location ``system.blockHash: ...``.
    """

    module: str
    item: Optional[str] = None

    def matches(self, location: "StorageLocation") -> bool:
        if string_camel_case(self.module) != location.module:
            return False
        return self.item is None or string_camel_case(self.item) == location.item


ExemptionPattern = Union[str, Exemption]


@dataclass(frozen=True)
class Check:
    """
    One metadata fixture under test.

    Attributes:
        data:
            Encoded metadata. Accepts bytes or a ``0x``-prefixed hex string.
        fails:
            Storage locations expected to fail default-value validation,
            as legacy substrings of the location string or `Exemption` keys.
    """

    data: bytes
    fails: Tuple[ExemptionPattern, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _to_bytes(self.data))
        object.__setattr__(self, "fails", tuple(self.fails or ()))

    @classmethod
    def from_hex(cls, data: str, fails: Iterable[ExemptionPattern] = ()) -> "Check":
        return cls(data=_to_bytes(data), fails=tuple(fails))

    @property
    def hex(self) -> str:
        return "0x" + self.data.hex()


@dataclass(frozen=True)
class StorageLocation:
    """Deterministic identifier of a storage item: ``module.item: Type``."""

    module: str
    item: str
    type_name: str

    @classmethod
    def of(cls, pallet_name: str, item_name: str, type_name: str) -> "StorageLocation":
        return cls(string_camel_case(pallet_name), string_camel_case(item_name), type_name)

    @property
    def display(self) -> str:
        return f"{self.module}.{self.item}: {self.type_name}"

    def __str__(self) -> str:
        return self.display


__all__ = [
    "UNIFIED_LOOKUP_VERSION",
    "CodecInstance",
    "StorageItem",
    "StorageDescriptor",
    "Pallet",
    "TypeEntry",
    "LatestView",
    "Metadata",
    "TypeRegistry",
    "string_camel_case",
    "Exemption",
    "ExemptionPattern",
    "Check",
    "StorageLocation",
]
