# SPDX-License-Identifier: Apache-2.0
"""
Metadata Harness Tests

Conformance tests for the harness components, its CLI and the reference
codec in `metadata_harness.mock`.
"""
