# metadata_harness/loader.py
# SPDX-License-Identifier: Apache-2.0

"""
Check documents and registry factories.

A check document lists the fixtures of one schema version:

    {
      "version": 9,
      "checks": {
        "relevant-chain": {
          "data": "0x6d657461...",
          "fails": ["system.blockHash", {"module": "Babe", "item": "Randomness"}]
        }
      }
    }

Documents are validated against `CHECK_DOCUMENT_SCHEMA` (Draft 2020-12)
before any `Check` is built.
"""

from __future__ import annotations

import importlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from metadata_harness.core.errors import CheckDocumentError, RegistryLoadError
from metadata_harness.interfaces import Check, Exemption, ExemptionPattern, TypeRegistry

CHECK_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "urn:metadata-harness:check-document",
    "type": "object",
    "required": ["version", "checks"],
    "additionalProperties": False,
    "properties": {
        "version": {"type": "integer", "minimum": 0},
        "checks": {
            "type": "object",
            "minProperties": 1,
            "propertyNames": {"pattern": "^[A-Za-z0-9._-]+$"},
            "additionalProperties": {"$ref": "#/$defs/check"},
        },
    },
    "$defs": {
        "check": {
            "type": "object",
            "required": ["data"],
            "additionalProperties": False,
            "properties": {
                "data": {"type": "string", "pattern": "^(0x)?([0-9a-fA-F]{2})*$"},
                "fails": {"type": "array", "items": {"$ref": "#/$defs/exemption"}},
            },
        },
        "exemption": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {
                    "type": "object",
                    "required": ["module"],
                    "additionalProperties": False,
                    "properties": {
                        "module": {"type": "string", "minLength": 1},
                        "item": {"type": "string", "minLength": 1},
                    },
                },
            ]
        },
    },
}

Draft202012Validator.check_schema(CHECK_DOCUMENT_SCHEMA)
_VALIDATOR = Draft202012Validator(CHECK_DOCUMENT_SCHEMA)


@dataclass(frozen=True)
class CheckDocument:
    version: int
    checks: Mapping[str, Check]


def _pattern(raw: Union[str, Mapping[str, str]]) -> ExemptionPattern:
    if isinstance(raw, str):
        return raw
    return Exemption(raw["module"], raw.get("item"))


def parse_checks(doc: Any, *, source: str = "<document>") -> CheckDocument:
    """Validate a decoded JSON document and build its checks."""
    try:
        _VALIDATOR.validate(doc)
    except ValidationError as e:
        error_parts = [
            f"Check document validation failed: {source}",
            f"Error: {e.message}",
            f"JSON path: {'.'.join(str(p) for p in e.absolute_path) if e.absolute_path else '<root>'}",
            f"Schema path: {'.'.join(str(p) for p in e.absolute_schema_path) if e.absolute_schema_path else '<root>'}",
        ]
        raise CheckDocumentError(
            "\n".join(error_parts),
            details={"source": source, "path": [str(p) for p in e.absolute_path]},
        ) from e

    checks = {
        name: Check.from_hex(entry["data"], [_pattern(p) for p in entry.get("fails", [])])
        for name, entry in doc["checks"].items()
    }
    return CheckDocument(version=doc["version"], checks=checks)


def load_checks(path: Union[str, Path]) -> CheckDocument:
    """Read and validate a check document from disk."""
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            doc = json.load(f)
    except OSError as e:
        raise CheckDocumentError(f"Cannot read check document {p}: {e}", details={"source": str(p)}) from e
    except json.JSONDecodeError as e:
        raise CheckDocumentError(f"Invalid JSON in check document: {p}: {e}", details={"source": str(p)}) from e
    return parse_checks(doc, source=str(p))


def load_registry_factory(spec: str) -> Callable[[], TypeRegistry]:
    """
    Load a registry factory from a 'package.module:attr' string.

    ``attr`` may be a class or any zero-argument callable returning a registry.
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise RegistryLoadError(f"Invalid registry spec '{spec}'. Expected 'package.module:factory'.")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RegistryLoadError(
            f"Failed to import registry module '{module_name}' for spec '{spec}'."
        ) from exc

    try:
        factory = getattr(module, attr)
    except AttributeError as exc:
        raise RegistryLoadError(
            f"Registry factory '{attr}' not found in module '{module_name}' for spec '{spec}'."
        ) from exc

    if not callable(factory):
        raise RegistryLoadError(f"Registry factory '{spec}' is not callable.")
    return factory


__all__ = [
    "CHECK_DOCUMENT_SCHEMA",
    "CheckDocument",
    "parse_checks",
    "load_checks",
    "load_registry_factory",
]
