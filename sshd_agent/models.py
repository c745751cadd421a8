from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional


class Verdict(Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARNING = "WARNING"


# lower bound (inclusive) -> label, checked top-down
RATING_BANDS = (
    (90.0, "Excellent"),
    (70.0, "Good"),
    (50.0, "Fair"),
)


def rating_for(score: float) -> str:
    for threshold, label in RATING_BANDS:
        if score >= threshold:
            return label
    return "Poor"


@dataclass(frozen=True)
class CheckResult:
    name: str
    description: str
    verdict: Verdict
    details: str = ""
    remediation: str = ""
    family: str = ""

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS

    def as_dict(self) -> dict:
        data = asdict(self)
        data["verdict"] = self.verdict.value
        data["passed"] = self.passed
        return data


@dataclass
class ResultSet:
    """Ordered check results of one evaluation pass."""

    config_path: str = ""
    checks: List[CheckResult] = field(default_factory=list)

    def add(self, result: CheckResult) -> None:
        self.checks.append(result)

    def __iter__(self):
        return iter(self.checks)

    def __len__(self):
        return len(self.checks)

    @property
    def total(self) -> int:
        return len(self.checks)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.verdict is Verdict.PASS)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.checks if c.verdict is Verdict.FAIL)

    @property
    def warnings(self) -> int:
        return sum(1 for c in self.checks if c.verdict is Verdict.WARNING)

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    @property
    def score(self) -> float:
        return self.passed * 100.0 / self.total if self.total else 0.0

    @property
    def rating(self) -> str:
        return rating_for(self.score)

    def get(self, name: str) -> Optional[CheckResult]:
        for c in self.checks:
            if c.name == name:
                return c
        return None

    def summary(self) -> dict:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "score": round(self.score, 1),
            "rating": self.rating,
        }


@dataclass(frozen=True)
class PatchRequest:
    directive: str
    value: str


@dataclass(frozen=True)
class Backup:
    source: str
    path: str
