# metadata_harness/core/schema_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Explicit active-schema binding for one type registry.

Decoding a storage value needs the registry to know which metadata describes
the types being resolved. Instead of a process-wide "current metadata", each
fixture run owns one `SchemaContext` wrapping one registry, and every
decode-dependent call receives the metadata it decodes against. The context
(re)binds the registry only when the requested metadata differs from the
bound one.

Typical usage
-------------

    schema = SchemaContext(registry_factory())
    metadata = schema.load(check.data)         # decode + bind
    strategy = schema.resolve_type(metadata, item.type_ref)
    value = schema.decode_value(metadata, strategy, item.fallback, is_optional=True)

A context is not shared across fixtures. Independent fixtures may run in
parallel as long as each uses its own context (and therefore its own
registry).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from metadata_harness.core.errors import StructuralDecodeError, attach_context
from metadata_harness.interfaces import CodecInstance, Metadata, TypeRegistry

LOG = logging.getLogger(__name__)


class SchemaContext:
    """Owns one registry and its active-schema binding."""

    def __init__(self, registry: TypeRegistry) -> None:
        self._registry: Optional[TypeRegistry] = registry
        self._active: Optional[Metadata] = None

    def __enter__(self) -> "SchemaContext":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        version = getattr(self._active, "version", None)
        return f"SchemaContext(registry={type(self._registry).__name__}, active_version={version})"

    @property
    def registry(self) -> TypeRegistry:
        if self._registry is None:
            raise RuntimeError("SchemaContext has been released")
        return self._registry

    @property
    def active(self) -> Optional[Metadata]:
        return self._active

    def release(self) -> None:
        """Drop the registry and the binding; the context is unusable afterwards."""
        self._registry = None
        self._active = None

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #

    def decode_metadata(self, data: bytes) -> Metadata:
        """Decode metadata without binding it."""
        registry = self.registry
        try:
            return registry.create_metadata(data)
        except Exception as exc:
            err = StructuralDecodeError(
                f"Unable to decode metadata: {exc}",
                details={"length": len(data)},
            )
            attach_context(err, "schema_context", operation="create_metadata")
            raise err from exc

    def bind(self, metadata: Metadata) -> None:
        """Make ``metadata`` the registry's active schema."""
        if self._active is metadata:
            return
        self.registry.set_active_schema(metadata)
        self._active = metadata
        LOG.debug("bound active schema v%s", getattr(metadata, "version", "?"))

    def load(self, data: bytes) -> Metadata:
        """Decode metadata and bind it as the active schema."""
        metadata = self.decode_metadata(data)
        self.bind(metadata)
        return metadata

    # ------------------------------------------------------------------ #
    # Decode-dependent operations
    # ------------------------------------------------------------------ #

    def type_name(self, metadata: Metadata, type_ref: Any, *, is_optional: bool = False) -> str:
        self.bind(metadata)
        return self.registry.type_name(type_ref, is_optional=is_optional)

    def resolve_type(self, metadata: Metadata, type_ref: Any) -> Any:
        self.bind(metadata)
        try:
            return self.registry.resolve_type(type_ref)
        except Exception as exc:
            raise StructuralDecodeError(
                f"Unable to resolve type {type_ref}: {exc}",
                details={"type": str(type_ref)},
            ) from exc

    def decode_value(
        self,
        metadata: Metadata,
        strategy: Any,
        data: bytes,
        *,
        is_optional: bool = False,
    ) -> CodecInstance:
        self.bind(metadata)
        try:
            return self.registry.decode_value(strategy, data, is_optional=is_optional)
        except Exception as exc:
            raise StructuralDecodeError(
                str(exc) or type(exc).__name__,
                details={"length": len(data), "is_optional": is_optional},
            ) from exc


__all__ = ["SchemaContext"]
