from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class VerdictStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    NOT_APPLICABLE = "not_applicable"
    ERROR = "error"


@dataclass
class AssertionResult:
    description: str
    status: VerdictStatus
    message: str


@dataclass
class RuleResult:
    id: str
    title: str
    status: VerdictStatus
    message: str
    severity: str
    impact: float
    assertion_results: List[AssertionResult] = field(default_factory=list)
    duration_ms: float = 0.0
    tags: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        for a in data["assertion_results"]:
            a["status"] = a["status"].value
        return data


@dataclass
class RunSummary:
    hostname: str
    virtualization_system: str
    counts: Dict[str, int]
    total: int
    started_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    finished_at: Optional[str] = None
    rules_file: str = ""

    @property
    def compliant(self) -> bool:
        return self.counts.get(VerdictStatus.FAIL.value, 0) == 0 and self.counts.get(VerdictStatus.ERROR.value, 0) == 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["compliant"] = self.compliant
        return data
