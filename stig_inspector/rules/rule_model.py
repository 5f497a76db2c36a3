from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from stig_inspector.facts.models import FactSpec

SEVERITY_IMPACT = {
    "low": 0.3,
    "medium": 0.5,
    "high": 0.7,
}


@dataclass
class AssertionOutcome:
    passed: bool
    message: str


@dataclass
class Assertion:
    description: str
    facts: Tuple[str, ...]
    check: Callable[[Dict[str, Any]], AssertionOutcome]


@dataclass
class Rule:
    id: str
    title: str
    severity: str
    assertions: List[Assertion]
    facts: Dict[str, FactSpec] = field(default_factory=dict)
    only_if: List[str] = field(default_factory=list)
    impact: Optional[float] = None
    tags: Dict[str, Any] = field(default_factory=dict)
    disabled: bool = False

    def __post_init__(self):
        if self.impact is None:
            self.impact = SEVERITY_IMPACT.get(self.severity, 0.5)

    @property
    def required_facts(self) -> List[str]:
        names = list(self.facts)
        for assertion in self.assertions:
            names.extend(n for n in assertion.facts if n not in names)
        return names
