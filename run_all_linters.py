#!/usr/bin/env python3
"""Run the formatters, linters and the test suite in one go.

Steps, in order: black, isort, ruff, pylint, pytest. Every step runs even
if an earlier one failed; the collected output is printed at the end.
"""

from pathlib import Path
import subprocess
import sys

PACKAGES = ["core", "infrastructure", "main.py"]

COMMANDS = [
    (["python", "-m", "black", ".", "--check"], "black format check"),
    (["python", "-m", "isort", ".", "--check-only"], "isort import order"),
    (["python", "-m", "ruff", "check", "."], "ruff"),
    (["python", "-m", "pylint", *PACKAGES], "pylint"),
    (["python", "-m", "pytest", "-q"], "pytest"),
]


def run_step(cmd: list[str], title: str) -> tuple[bool, str]:
    """Run one step and return (passed, combined output)."""
    print(f"\n{'=' * 60}\n{title}: {' '.join(cmd)}\n{'=' * 60}")
    try:
        proc = subprocess.run(
            cmd, capture_output=True, text=True, check=False, cwd=Path(__file__).parent
        )
    except OSError as e:
        print(f"FAILED to start: {e}")
        return False, str(e)

    output = proc.stdout + proc.stderr
    passed = proc.returncode == 0
    print("ok" if passed else "FAILED")
    if output.strip():
        print(output)
    return passed, output


def main() -> None:
    results = [(title, *run_step(cmd, title)) for cmd, title in COMMANDS]

    print(f"\n{'=' * 60}\nSummary\n{'=' * 60}")
    for title, passed, _ in results:
        print(f"{title}: {'ok' if passed else 'FAILED'}")

    failed = [(title, output) for title, passed, output in results if not passed]
    for title, output in failed:
        if output.strip():
            print(f"\n--- {title} ---\n{output}")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
