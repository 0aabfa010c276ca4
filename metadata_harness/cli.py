# metadata_harness/cli.py
# SPDX-License-Identifier: Apache-2.0
"""
metadata-harness CLI

Runs the conformance suite for one check document against a registry
implementation, outside of a test runner.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import List, Optional

from metadata_harness.checks import CheckResult, CheckStatus, NamedCheck, SuiteReport, run_check
from metadata_harness.core.config import HarnessConfig, StrictMode
from metadata_harness.core.errors import HarnessError
from metadata_harness.fixtures import JsonFixtureStore
from metadata_harness.loader import load_checks, load_registry_factory
from metadata_harness.suite import build_suite

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2

_STATUS_MARKS = {
    CheckStatus.PASSED: "✅",
    CheckStatus.FAILED: "❌",
    CheckStatus.SKIPPED: "⏭️ ",
}


# --------------------------------------------------------------------------- #
# Internal helpers
# --------------------------------------------------------------------------- #

def _configure_logging(quiet: bool, verbose: bool) -> None:
    level = logging.WARNING
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _print_result(result: CheckResult, verbose: bool) -> None:
    print(f"{_STATUS_MARKS[result.status]} {result.description}")
    if result.status is CheckStatus.FAILED and result.message:
        for line in result.message.splitlines():
            print(f"     {line}")
    elif verbose and result.status is CheckStatus.SKIPPED:
        print(f"     skipped: {result.message}")


def _print_summary(report: SuiteReport, elapsed: float) -> None:
    print(
        f"\n{len(report.results)} checks: {report.passed} passed, "
        f"{report.failed} failed, {report.skipped} skipped in {elapsed:.2f}s"
    )
    if report.success:
        print("✅ All checks conform.")
    else:
        print("❌ Conformance failures detected.")


def _build(args: argparse.Namespace, config: HarnessConfig) -> List[NamedCheck]:
    document = load_checks(args.checks)
    factory = load_registry_factory(args.registry or config.registry_spec)
    mode = StrictMode.parse(args.mode) if args.mode is not None else config.mode
    store = JsonFixtureStore(args.fixtures or config.fixtures_root)
    return build_suite(
        document.version,
        document.checks,
        factory,
        store=store,
        mode=mode,
        with_fallback=config.verify_fallback and not args.no_fallback_check,
        strict=not args.lenient,
        substring_exemptions=config.substring_exemptions and not args.structured_exemptions,
    )


# --------------------------------------------------------------------------- #
# main
# --------------------------------------------------------------------------- #

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metadata-harness",
        description="Metadata conformance harness - round trip, golden fixture and default-value checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  metadata-harness run checks/v14.json
  metadata-harness run checks/v9.json --registry mychain.codec:TypeRegistry --mode enforce
  metadata-harness run checks/v13.json --json > report.json
  metadata-harness run checks/v13.json --list

Configuration (environment variables):
  METADATA_FIXTURES_ROOT=dir               Golden fixture directory
  METADATA_HARNESS_MODE=enforce            auto | enforce | reconcile
  METADATA_HARNESS_REGISTRY=pkg.mod:attr   Registry factory
  GITHUB_REPOSITORY / CI                   Automated context (mode auto -> enforce)
        """.strip(),
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print failures and the summary")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and skipped check reasons")

    # accepted after the subcommand too; SUPPRESS keeps the top-level value when absent there
    verbosity = argparse.ArgumentParser(add_help=False)
    verbosity.add_argument("-q", "--quiet", action="store_true", default=argparse.SUPPRESS, help="Same as the global flag")
    verbosity.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Same as the global flag")

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    run_parser = subparsers.add_parser("run", parents=[verbosity], help="Run the suite for one check document")
    run_parser.add_argument("checks", help="Path to a check document (JSON)")
    run_parser.add_argument("--registry", help="Registry factory as 'package.module:attr'")
    run_parser.add_argument("--fixtures", help="Golden fixture directory")
    run_parser.add_argument(
        "--mode",
        choices=["auto", "enforce", "reconcile"],
        help="Fixture mismatch handling (default: from environment)",
    )
    run_parser.add_argument(
        "--no-fallback-check", action="store_true",
        help="Skip re-encoding storage defaults",
    )
    run_parser.add_argument(
        "--lenient", action="store_true",
        help="Log default-value and uniqueness problems instead of failing",
    )
    run_parser.add_argument(
        "--structured-exemptions", action="store_true",
        help="Match string exemptions as exact module.item keys instead of substrings",
    )
    run_parser.add_argument("--json", action="store_true", help="Print a JSON report")
    run_parser.add_argument("--list", action="store_true", help="List check descriptions without running them")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    _configure_logging(args.quiet, args.verbose)
    config = HarnessConfig.from_env()

    try:
        checks = _build(args, config)
    except (HarnessError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE

    if args.list:
        for check in checks:
            suffix = f"  [skip: {check.skip_reason}]" if check.skipped else ""
            print(f"{check.description}{suffix}")
        return EXIT_OK

    start = time.time()
    report = SuiteReport()
    for check in checks:
        result = run_check(check)
        report.results.append(result)
        if not args.json and (not args.quiet or result.status is CheckStatus.FAILED):
            _print_result(result, args.verbose)
    elapsed = time.time() - start

    if args.json:
        print(json.dumps({**report.to_dict(), "duration": round(elapsed, 3)}, indent=2, default=str))
    else:
        _print_summary(report, elapsed)

    return EXIT_OK if report.success else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
