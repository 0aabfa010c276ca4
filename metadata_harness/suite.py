# metadata_harness/suite.py
# SPDX-License-Identifier: Apache-2.0

"""
Top-level driver.

For each named fixture of one schema version, a fresh registry and schema
context are created and the four components registered in order:

    round trip -> golden fixtures -> conversion -> storage defaults

Usage
-----
    checks = build_suite(
        9,
        {"relevant-chain": Check(data=blob)},
        MockTypeRegistry,
        store=JsonFixtureStore("fixtures/metadata"),
    )
    report = run_checks(checks)
"""

from __future__ import annotations

import logging
from typing import Callable, List, Mapping, Optional

from metadata_harness.checks import NamedCheck, SuiteReport, run_checks
from metadata_harness.conversion import check_conversion
from metadata_harness.core.config import StrictMode
from metadata_harness.core.schema_context import SchemaContext
from metadata_harness.defaults import validate_defaults
from metadata_harness.fixtures import FixtureStore
from metadata_harness.interfaces import Check, TypeRegistry
from metadata_harness.reconciler import reconcile_fixtures
from metadata_harness.roundtrip import verify_round_trip

LOG = logging.getLogger(__name__)

RegistryFactory = Callable[[], TypeRegistry]


def build_suite(
    version: int,
    checks: Mapping[str, Check],
    registry_factory: RegistryFactory,
    *,
    store: FixtureStore,
    mode: Optional[StrictMode] = None,
    with_fallback: bool = True,
    strict: bool = True,
    substring_exemptions: bool = True,
) -> List[NamedCheck]:
    """Register every check for every fixture of ``version``."""
    suite: List[NamedCheck] = []
    for name, check in checks.items():
        schema = SchemaContext(registry_factory())
        scope = (f"MetadataV{version}", name)

        suite.extend(verify_round_trip(schema, check, scope=scope))
        suite.extend(
            reconcile_fixtures(schema, name, version, check, store=store, mode=mode, scope=scope)
        )
        suite.append(check_conversion(schema, version, check, strict=strict, scope=scope))
        suite.extend(
            validate_defaults(
                schema,
                check,
                strict=strict,
                verify_round_trip=with_fallback,
                substring_exemptions=substring_exemptions,
                scope=scope,
            )
        )
        LOG.debug("registered fixture %s for v%s", name, version)
    return suite


def run_suite(
    version: int,
    checks: Mapping[str, Check],
    registry_factory: RegistryFactory,
    **kwargs,
) -> SuiteReport:
    """Build and run the suite; see `build_suite` for keyword arguments."""
    return run_checks(build_suite(version, checks, registry_factory, **kwargs))


__all__ = ["RegistryFactory", "build_suite", "run_suite"]
