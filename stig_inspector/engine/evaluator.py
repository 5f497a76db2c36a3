import time
from typing import Dict, List

from stig_inspector.exceptions import FactFormatError
from stig_inspector.facts.context import EvaluationContext
from stig_inspector.facts.models import Fact
from stig_inspector.reports.models import AssertionResult, RuleResult, VerdictStatus
from stig_inspector.rules.applicability import not_applicable_reason
from stig_inspector.rules.rule_model import Rule
from stig_inspector.utils.logger import get_logger

logger = get_logger()


class Evaluator:
    """
    Applies a rule to its collected facts and produces exactly one RuleResult.

    Never raises for problems with the facts or the assertions: those become
    an ERROR result so one broken control cannot abort a batch.
    """

    def evaluate(self, rule: Rule, facts: Dict[str, Fact], context: EvaluationContext) -> RuleResult:
        start = time.perf_counter()
        result = self._evaluate(rule, facts, context)
        result.duration_ms = round((time.perf_counter() - start) * 1000, 3)
        logger.info(f"[Evaluator] {rule.id} → {result.status.value}: {result.message}")
        return result

    def _result(self, rule: Rule, status: VerdictStatus, message: str,
                assertion_results: List[AssertionResult] = None) -> RuleResult:
        return RuleResult(
            id=rule.id,
            title=rule.title,
            status=status,
            message=message,
            severity=rule.severity,
            impact=0.0 if status == VerdictStatus.NOT_APPLICABLE else rule.impact,
            assertion_results=assertion_results or [],
            tags=rule.tags,
        )

    def _evaluate(self, rule: Rule, facts: Dict[str, Fact], context: EvaluationContext) -> RuleResult:
        # Applicability comes first; assertions of a skipped rule never run
        reason = not_applicable_reason(rule.only_if, context)
        if reason:
            return self._result(rule, VerdictStatus.NOT_APPLICABLE, reason)

        problems = []
        for name in rule.required_facts:
            fact = facts.get(name)
            if fact is None:
                problems.append(f"required fact '{name}' was not collected")
            elif not fact.available:
                problems.append(f"fact '{name}' unavailable: {fact.error}")
        if problems:
            return self._result(rule, VerdictStatus.ERROR, "; ".join(problems))

        values = {name: fact.value for name, fact in facts.items()}
        outcomes = [self._run_assertion(rule, a, values) for a in rule.assertions]
        return self._aggregate(rule, outcomes)

    def _run_assertion(self, rule: Rule, assertion, values) -> AssertionResult:
        try:
            outcome = assertion.check(values)
        except FactFormatError as ex:
            return AssertionResult(assertion.description, VerdictStatus.ERROR, f"malformed fact: {ex}")
        except Exception as ex:
            logger.warning(f"[Evaluator] ⚠ Rule {rule.id} assertion '{assertion.description}' raised: {ex}")
            return AssertionResult(assertion.description, VerdictStatus.ERROR,
                                   f"assertion raised {type(ex).__name__}: {ex}")

        status = VerdictStatus.PASS if outcome.passed else VerdictStatus.FAIL
        return AssertionResult(assertion.description, status, outcome.message)

    def _aggregate(self, rule: Rule, outcomes: List[AssertionResult]) -> RuleResult:
        # Order independent: a finding outranks an error, an error outranks a pass
        for status in (VerdictStatus.FAIL, VerdictStatus.ERROR):
            matching = [o.message for o in outcomes if o.status == status]
            if matching:
                return self._result(rule, status, "; ".join(matching), outcomes)
        return self._result(rule, VerdictStatus.PASS, "; ".join(o.message for o in outcomes), outcomes)
