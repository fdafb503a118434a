from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
DEFAULT_TARGETS = ("membership_engine", "scripts", "healthcheck.py")
# The only module allowed to read the wall clock.
ALLOWED = {"membership_engine/core/time_provider.py"}

FORBIDDEN_CALLS = re.compile(r"\b(?:datetime\.(?:now|utcnow|today)|date\.today)\(")


def _python_files(target: Path):
    if target.is_file():
        yield target
    elif target.is_dir():
        yield from sorted(target.rglob("*.py"))


def find_violations(targets) -> list[tuple[str, int, str]]:
    violations: list[tuple[str, int, str]] = []
    for name in targets:
        for file_path in _python_files(ROOT / name):
            relative = file_path.relative_to(ROOT).as_posix()
            if relative in ALLOWED:
                continue
            for idx, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), start=1):
                if FORBIDDEN_CALLS.search(line):
                    violations.append((relative, idx, line.strip()))
    return violations


def main() -> int:
    parser = argparse.ArgumentParser(description="Fail when code reads the clock outside core/time_provider.py")
    parser.add_argument("targets", nargs="*", default=list(DEFAULT_TARGETS))
    args = parser.parse_args()

    violations = find_violations(args.targets)
    if violations:
        print("Use default_time_provider instead of reading the clock directly:")
        for path, line_no, line in violations:
            print(f" - {path}:{line_no}: {line}")
        return 1

    print(f"No direct clock reads in {', '.join(args.targets)}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
