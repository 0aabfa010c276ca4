# metadata_harness/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Metadata conformance harness - Public API

Validates a versioned, self-describing binary metadata codec against golden
fixtures: byte-exact round trips, structural snapshots, conversion to the
latest schema and decodability of every storage default.
"""

from metadata_harness.checks import (
    CheckResult,
    CheckStatus,
    NamedCheck,
    SuiteReport,
    run_check,
    run_checks,
)
from metadata_harness.conversion import check_conversion, scan_unique_types
from metadata_harness.core.config import HarnessConfig, StrictMode
from metadata_harness.core.errors import (
    CheckDocumentError,
    ConversionError,
    DefaultValueError,
    FidelityError,
    FixtureMismatchError,
    FixtureStoreError,
    HarnessError,
    RegistryLoadError,
    StructuralDecodeError,
    attach_context,
    get_context,
)
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.defaults import (
    ExemptionMatcher,
    FatalFailure,
    Ok,
    ToleratedFailure,
    ValidationOutcome,
    classify_failure,
    validate_defaults,
)
from metadata_harness.fixtures import (
    FixtureKind,
    FixtureStore,
    JsonFixtureStore,
    MemoryFixtureStore,
)
from metadata_harness.interfaces import (
    UNIFIED_LOOKUP_VERSION,
    Check,
    Exemption,
    Metadata,
    StorageLocation,
    TypeRegistry,
    string_camel_case,
)
from metadata_harness.loader import load_checks, load_registry_factory, parse_checks
from metadata_harness.reconciler import ReconcileOutcome, compare_or_reconcile, reconcile_fixtures
from metadata_harness.roundtrip import verify_round_trip
from metadata_harness.suite import build_suite, run_suite

__version__ = "1.0.0"

__all__ = [
    "__version__",
    # Fixture inputs
    "Check",
    "Exemption",
    "StorageLocation",
    "string_camel_case",
    "UNIFIED_LOOKUP_VERSION",
    # Collaborators
    "Metadata",
    "TypeRegistry",
    "SchemaContext",
    "FixtureKind",
    "FixtureStore",
    "JsonFixtureStore",
    "MemoryFixtureStore",
    # Components
    "verify_round_trip",
    "reconcile_fixtures",
    "compare_or_reconcile",
    "ReconcileOutcome",
    "check_conversion",
    "scan_unique_types",
    "validate_defaults",
    "classify_failure",
    "ExemptionMatcher",
    "Ok",
    "ToleratedFailure",
    "FatalFailure",
    "ValidationOutcome",
    # Driver
    "build_suite",
    "run_suite",
    "NamedCheck",
    "CheckResult",
    "CheckStatus",
    "SuiteReport",
    "run_check",
    "run_checks",
    "load_checks",
    "parse_checks",
    "load_registry_factory",
    # Config
    "HarnessConfig",
    "StrictMode",
    # Errors
    "HarnessError",
    "StructuralDecodeError",
    "FidelityError",
    "ConversionError",
    "FixtureMismatchError",
    "FixtureStoreError",
    "DefaultValueError",
    "CheckDocumentError",
    "RegistryLoadError",
    "attach_context",
    "get_context",
]
