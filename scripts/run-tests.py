#!/usr/bin/env python3
"""
Test runner for Competitor Monitor.

Wraps pytest with the selections used day to day: unit, integration,
fast, a single test path, re-running failures and coverage reporting.
"""

import argparse
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List

PACKAGE = "competitor_monitor"


class TestRunner:
    """Runs pytest with a given selection from the project root."""

    def __init__(self, project_root: Path):
        self.project_root = project_root

    def run_command(self, command: List[str], description: str) -> bool:
        print(f"\n{description}...")
        print(f"Running: {' '.join(command)}")

        try:
            result = subprocess.run(command, cwd=self.project_root, check=False)
        except FileNotFoundError:
            print(f"{description} failed - pytest not found")
            return False

        if result.returncode == 0:
            print(f"{description} completed successfully")
            return True
        print(f"{description} failed with exit code {result.returncode}")
        return False

    def run_marked(self, marker: str, description: str, verbose: bool = False) -> bool:
        cmd = ["pytest", "-m", marker]
        if verbose:
            cmd.append("-v")
        return self.run_command(cmd, description)

    def run_coverage_tests(self, min_coverage: int = 85) -> bool:
        """Run the suite with coverage reporting for the package."""
        cmd = [
            "pytest",
            f"--cov={PACKAGE}",
            f"--cov-fail-under={min_coverage}",
            "--cov-report=term-missing",
            "--cov-report=html:htmlcov",
            "--cov-report=xml:coverage.xml",
        ]
        return self.run_command(cmd, f"Coverage tests (min {min_coverage}%)")

    def run_pytest(self, extra: List[str], description: str, verbose: bool = False) -> bool:
        cmd = ["pytest", *extra]
        if verbose:
            cmd.append("-v")
        return self.run_command(cmd, description)

    def clean_test_artifacts(self) -> None:
        print("\nCleaning test artifacts...")

        for artifact in [".pytest_cache", ".coverage", "htmlcov", "coverage.xml", "logs"]:
            path = self.project_root / artifact
            if path.is_dir():
                shutil.rmtree(path)
                print(f"  Removed directory: {artifact}")
            elif path.exists():
                path.unlink()
                print(f"  Removed file: {artifact}")

        for pycache in self.project_root.rglob("__pycache__"):
            shutil.rmtree(pycache, ignore_errors=True)


def main():
    parser = argparse.ArgumentParser(description="Run Competitor Monitor tests")
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--unit", action="store_true", help="Run unit tests only")
    selection.add_argument("--integration", action="store_true", help="Run integration tests only")
    selection.add_argument("--fast", action="store_true", help="Skip slow tests")
    selection.add_argument("--failed", action="store_true", help="Re-run failures from last run")
    selection.add_argument("--coverage", action="store_true", help="Run with coverage reporting")
    selection.add_argument("--test", type=str, help="Run a specific test file or node id")
    selection.add_argument("--clean", action="store_true", help="Clean test artifacts")
    parser.add_argument("--min-coverage", type=int, default=85, help="Minimum coverage percentage")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument(
        "--project-root", type=Path, default=Path.cwd(), help="Project root directory"
    )
    args = parser.parse_args()

    runner = TestRunner(args.project_root)

    if args.clean:
        runner.clean_test_artifacts()
        return

    if args.unit:
        success = runner.run_marked("unit", "Unit tests", args.verbose)
    elif args.integration:
        success = runner.run_marked("integration", "Integration tests", args.verbose)
    elif args.fast:
        success = runner.run_marked("not slow", "Fast tests", args.verbose)
    elif args.failed:
        success = runner.run_pytest(["--lf"], "Failed tests from last run", args.verbose)
    elif args.coverage:
        success = runner.run_coverage_tests(args.min_coverage)
    elif args.test:
        success = runner.run_pytest([args.test], f"Specific test: {args.test}", args.verbose)
    else:
        success = runner.run_pytest([], "All tests", args.verbose)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
