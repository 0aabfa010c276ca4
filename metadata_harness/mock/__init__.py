# metadata_harness/mock/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Reference collaborator implementations used by tests and the CLI demo."""

from metadata_harness.mock.mock_metadata_codec import (
    MockCodecError,
    MockMetadata,
    MockTypeRegistry,
    build_metadata,
    pallet,
    sample_metadata,
    storage_item,
)

__all__ = [
    "MockCodecError",
    "MockMetadata",
    "MockTypeRegistry",
    "build_metadata",
    "pallet",
    "sample_metadata",
    "storage_item",
]
