from __future__ import annotations

import re
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
SCANNED = (ROOT / "membership_engine", ROOT / "scripts")
CLOCK_MODULE = ROOT / "membership_engine" / "core" / "time_provider.py"

FORBIDDEN_CALLS = re.compile(r"\b(?:datetime\.(?:now|utcnow|today)|date\.today)\(")


def test_clock_is_only_read_through_time_provider() -> None:
    violations: list[str] = []
    for directory in SCANNED:
        for file_path in directory.rglob("*.py"):
            if file_path == CLOCK_MODULE:
                continue
            for idx, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), start=1):
                if FORBIDDEN_CALLS.search(line):
                    violations.append(f"{file_path.relative_to(ROOT)}:{idx}: {line.strip()}")

    assert not violations, "Direct datetime usage found:\n" + "\n".join(violations)


def test_time_provider_itself_reads_the_clock() -> None:
    assert FORBIDDEN_CALLS.search(CLOCK_MODULE.read_text(encoding="utf-8"))
