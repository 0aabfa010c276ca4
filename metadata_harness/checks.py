# metadata_harness/checks.py
# SPDX-License-Identifier: Apache-2.0

"""
Named checks and their execution.

Components never assert directly. They return `NamedCheck` objects: a
description plus a zero-argument body that raises on failure. The caller
decides how to run them: `run_checks` executes them in order and isolates
failures per check; a pytest suite parametrizes over them instead.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from metadata_harness.core.errors import FidelityError, HarnessError, get_context

LOG = logging.getLogger(__name__)

SCOPE_SEPARATOR = " > "


@dataclass(frozen=True)
class NamedCheck:
    """One independently reportable assertion."""

    scope: Tuple[str, ...]
    name: str
    body: Callable[[], Any] = field(repr=False, compare=False)
    skip_reason: Optional[str] = None

    @property
    def description(self) -> str:
        return SCOPE_SEPARATOR.join((*self.scope, self.name))

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    def run(self) -> Any:
        return self.body()


class CheckStatus(enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CheckResult:
    description: str
    status: CheckStatus
    ms: float = 0.0
    message: Optional[str] = None
    error: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.status is not CheckStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "description": self.description,
            "status": self.status.value,
            "ms": round(self.ms, 3),
        }
        if self.message is not None:
            out["message"] = self.message
        if isinstance(self.error, HarnessError):
            out["code"] = self.error.code
            out["details"] = self.error.details
        if self.error is not None:
            ctx = get_context(self.error)
            if ctx:
                out["context"] = ctx
        return out


@dataclass
class SuiteReport:
    results: List[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.status is CheckStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status is CheckStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status is CheckStatus.SKIPPED)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if r.status is CheckStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total": len(self.results),
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [r.to_dict() for r in self.results],
        }


def run_check(check: NamedCheck) -> CheckResult:
    """Run one check; exceptions become a FAILED result."""
    if check.skipped:
        return CheckResult(check.description, CheckStatus.SKIPPED, message=check.skip_reason)

    start = time.perf_counter()
    try:
        check.run()
    except Exception as exc:
        elapsed = (time.perf_counter() - start) * 1000.0
        LOG.debug("check failed: %s", check.description, exc_info=True)
        return CheckResult(
            check.description,
            CheckStatus.FAILED,
            ms=elapsed,
            message=f"{type(exc).__name__}: {exc}",
            error=exc,
        )
    return CheckResult(check.description, CheckStatus.PASSED, ms=(time.perf_counter() - start) * 1000.0)


def run_checks(checks: Iterable[NamedCheck]) -> SuiteReport:
    """Run checks in order. A failing check never stops its siblings."""
    report = SuiteReport()
    for check in checks:
        report.results.append(run_check(check))
    return report


# --------------------------------------------------------------------------- #
# Assertion helpers
# --------------------------------------------------------------------------- #

def assert_bytes_equal(actual: bytes, expected: bytes, *, what: str = "bytes differ") -> None:
    """Byte-for-byte comparison; raises FidelityError with both hex forms."""
    if actual == expected:
        return
    missing = len(expected) - len(actual)
    raise FidelityError(
        f"{what} ({missing} bytes missing): 0x{actual.hex()} != 0x{expected.hex()}",
        details={
            "expected_len": len(expected),
            "actual_len": len(actual),
            "missing": missing,
        },
    )


def assert_no_raise(fn: Callable[[], Any], *, description: str = "") -> None:
    """Outer exception boundary: any escaping exception becomes an AssertionError."""
    try:
        fn()
    except Exception as exc:
        label = f"{description}: " if description else ""
        raise AssertionError(f"{label}expected no exception, got {type(exc).__name__}: {exc}") from exc


__all__ = [
    "NamedCheck",
    "CheckStatus",
    "CheckResult",
    "SuiteReport",
    "run_check",
    "run_checks",
    "assert_bytes_equal",
    "assert_no_raise",
]
