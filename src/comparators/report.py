from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class DriverIssue:
    code: str
    message: str
    hint: str
    context: dict[str, Any] | None = None


@dataclass
class PairReport:
    baseline_path: Path
    test_path: Path
    best_baseline: Path | None = None
    score: int = 0
    passed: bool = False
    artifacts: list[Path] = field(default_factory=list)
    issues: list[DriverIssue] = field(default_factory=list)
