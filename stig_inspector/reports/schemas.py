from typing import List
from pydantic import BaseModel, Field, field_validator

from stig_inspector.reports.models import RuleResult, VerdictStatus


class ReportEntryModel(BaseModel):
    """One row of the machine-readable results array."""
    id: str
    title: str = ""
    verdict: VerdictStatus
    message: str
    severity: str
    impact: float = Field(ge=0.0, le=1.0)

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v):
        return str(v).strip().lower()

    @classmethod
    def from_result(cls, result: RuleResult) -> "ReportEntryModel":
        return cls(
            id=result.id,
            title=result.title,
            verdict=result.status,
            message=result.message,
            severity=result.severity,
            impact=result.impact,
        )


def to_report_entries(results: List[RuleResult]) -> List[dict]:
    return [ReportEntryModel.from_result(r).model_dump(mode="json") for r in results]
