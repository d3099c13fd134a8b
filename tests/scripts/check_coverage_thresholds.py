"""Fail the build when package or module coverage drops below its floor."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

PACKAGE_THRESHOLDS = {
    "asset_keys/": 95.0,
    "asset_proxy/": 85.0,
}

# Modules whose concurrency or signing paths must stay fully exercised.
MODULE_THRESHOLDS = {
    "asset_keys/cache.py": 98.0,
    "asset_keys/signing.py": 98.0,
}


def _percent(summaries: list[dict]) -> float:
    """Weighted line coverage over coverage.py file summaries."""
    statements = sum(int(summary["num_statements"]) for summary in summaries)
    covered = sum(int(summary["covered_lines"]) for summary in summaries)
    if statements == 0:
        return 100.0
    return covered / statements * 100.0


def _check(report: dict) -> list[str]:
    """Return one failure message per threshold that is not met."""
    summaries = {
        file_path.replace("\\", "/"): payload["summary"]
        for file_path, payload in report.get("files", {}).items()
    }
    failures: list[str] = []

    for prefix, threshold in PACKAGE_THRESHOLDS.items():
        matched = [summary for path, summary in summaries.items() if path.startswith(prefix)]
        if not matched:
            failures.append(f"{prefix}: no files matched prefix")
            continue
        percentage = _percent(matched)
        print(f"{prefix}: {percentage:.2f}% (files={len(matched)}, threshold={threshold:.2f}%)")
        if percentage < threshold:
            failures.append(f"{prefix}: {percentage:.2f}% is below required {threshold:.2f}%")

    for module, threshold in MODULE_THRESHOLDS.items():
        summary = summaries.get(module)
        if summary is None:
            failures.append(f"{module}: missing from report")
            continue
        percentage = _percent([summary])
        print(f"{module}: {percentage:.2f}% (threshold={threshold:.2f}%)")
        if percentage < threshold:
            failures.append(f"{module}: {percentage:.2f}% is below required {threshold:.2f}%")
    return failures


def main() -> int:
    """Run threshold checks against a ``coverage json`` report."""
    parser = argparse.ArgumentParser(prog="check_coverage_thresholds")
    parser.add_argument("report", type=Path, help="Path to coverage.json.")
    args = parser.parse_args()

    if not args.report.exists():
        print(f"Coverage report not found: {args.report}")
        return 2

    with args.report.open("r", encoding="utf-8") as handle:
        failures = _check(json.load(handle))

    if failures:
        print("\nCoverage threshold failures:")
        for failure in failures:
            print(f"- {failure}")
        return 1

    print("\nCoverage thresholds satisfied.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
