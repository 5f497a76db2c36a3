from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

from stig_inspector.facts.context import EvaluationContext
from stig_inspector.reports.models import RuleResult, RunSummary, VerdictStatus


def count_verdicts(results: List[RuleResult]) -> Dict[str, int]:
    """Counts per verdict kind; every kind is present, even at zero."""
    counter = Counter(r.status.value for r in results)
    return {status.value: counter.get(status.value, 0) for status in VerdictStatus}


def build_run_summary(
    results: List[RuleResult],
    context: EvaluationContext,
    started_at: Optional[str] = None,
    rules_file: str = ""
) -> RunSummary:
    summary = RunSummary(
        hostname=context.hostname,
        virtualization_system=context.virtualization_system,
        counts=count_verdicts(results),
        total=len(results),
        finished_at=datetime.now().isoformat(timespec="seconds"),
        rules_file=rules_file,
    )
    if started_at:
        summary.started_at = started_at
    return summary


def format_console_summary(results: List[RuleResult], summary: RunSummary) -> str:
    lines = [f"{'RULE':<12} {'VERDICT':<15} {'SEVERITY':<9} MESSAGE"]
    for r in results:
        lines.append(f"{r.id:<12} {r.status.value:<15} {r.severity:<9} {r.message}")
    lines.append("")
    lines.append(" | ".join(f"{k}: {v}" for k, v in summary.counts.items()) + f" | total: {summary.total}")
    return "\n".join(lines)
