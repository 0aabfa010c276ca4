# metadata_harness/core/__init__.py
# SPDX-License-Identifier: Apache-2.0
