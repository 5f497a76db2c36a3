from itertools import permutations

import pytest

from stig_inspector.engine.evaluator import Evaluator
from stig_inspector.exceptions import FactFormatError
from stig_inspector.facts.context import EvaluationContext
from stig_inspector.facts.models import Fact, FactSpec
from stig_inspector.reports.models import VerdictStatus
from stig_inspector.rules.applicability import CONDITIONS, is_known_condition, register_condition
from stig_inspector.rules.assertions import build_assertion
from stig_inspector.rules.rule_model import Assertion, AssertionOutcome, Rule

HOST = EvaluationContext(virtualization_system="none", gui_installed=True, hostname="rhel8")
CONTAINER = EvaluationContext(virtualization_system="docker", gui_installed=True, hostname="ctr")
NO_GUI = EvaluationContext(virtualization_system="kvm", gui_installed=False, hostname="server")

OUT_SPEC = FactSpec(kind="command", params={"command": "echo"})
PWQ_SPEC = FactSpec(kind="config_file", params={"path": "/etc/security/pwquality.conf"})


def constant(passed, message="", calls=None):
    def check(values):
        if calls is not None:
            calls.append(values)
        return AssertionOutcome(passed, message or ("ok" if passed else "bad"))
    return Assertion(description=message or str(passed), facts=("out",), check=check)


def raising(exc):
    def check(values):
        raise exc
    return Assertion(description="raises", facts=("out",), check=check)


def make_rule(assertions, only_if=None, facts=None, severity="medium"):
    return Rule(
        id="SV-000001",
        title="test rule",
        severity=severity,
        assertions=assertions,
        facts=facts or {"out": OUT_SPEC},
        only_if=only_if or [],
    )


def out_fact(stdout="x"):
    return {"out": Fact.ok(OUT_SPEC, {"stdout": stdout, "stderr": "", "exit_status": 0})}


@pytest.fixture
def evaluator():
    return Evaluator()


def test_not_applicable_rule_never_runs_assertions(evaluator):
    calls = []
    rule = make_rule([constant(True, calls=calls)], only_if=["not_container"])

    result = evaluator.evaluate(rule, out_fact(), CONTAINER)

    assert result.status == VerdictStatus.NOT_APPLICABLE
    assert calls == []
    assert result.impact == 0.0
    assert "container" in result.message


def test_not_applicable_without_facts(evaluator):
    rule = make_rule([constant(True)], only_if=["not_container", "gui_installed"])
    result = evaluator.evaluate(rule, {}, NO_GUI)
    assert result.status == VerdictStatus.NOT_APPLICABLE
    assert "GUI" in result.message


def test_applicable_rule_keeps_its_impact(evaluator):
    rule = make_rule([constant(True)], only_if=["not_container"], severity="low")
    result = evaluator.evaluate(rule, out_fact(), HOST)
    assert result.status == VerdictStatus.PASS
    assert result.impact == 0.3


def test_pass_iff_all_assertions_pass(evaluator):
    assert evaluator.evaluate(make_rule([constant(True), constant(True)]), out_fact(), HOST).status == VerdictStatus.PASS
    assert evaluator.evaluate(make_rule([constant(True), constant(False)]), out_fact(), HOST).status == VerdictStatus.FAIL


def test_verdict_independent_of_assertion_order(evaluator):
    assertions = [constant(True), constant(False, "finding"), raising(FactFormatError("bad shape"))]
    statuses = {
        evaluator.evaluate(make_rule(list(order)), out_fact(), HOST).status
        for order in permutations(assertions)
    }
    assert statuses == {VerdictStatus.FAIL}


def test_missing_required_fact_is_error(evaluator):
    result = evaluator.evaluate(make_rule([constant(True)]), {}, HOST)
    assert result.status == VerdictStatus.ERROR
    assert "not collected" in result.message


def test_unavailable_fact_is_error_never_pass(evaluator):
    facts = {"out": Fact.failed(OUT_SPEC, "command timed out after 10s: echo")}
    result = evaluator.evaluate(make_rule([constant(True)]), facts, HOST)
    assert result.status == VerdictStatus.ERROR
    assert "timed out" in result.message


def test_malformed_fact_is_error(evaluator):
    result = evaluator.evaluate(make_rule([constant(True), raising(FactFormatError("no stdout"))]), out_fact(), HOST)
    assert result.status == VerdictStatus.ERROR
    assert "malformed fact" in result.message


def test_unexpected_exception_does_not_escape(evaluator):
    result = evaluator.evaluate(make_rule([raising(KeyError("stdout"))]), out_fact(), HOST)
    assert result.status == VerdictStatus.ERROR
    assert "KeyError" in result.message


def test_assertion_details_recorded(evaluator):
    result = evaluator.evaluate(make_rule([constant(True, "first"), constant(False, "second")]), out_fact(), HOST)
    assert [a.status for a in result.assertion_results] == [VerdictStatus.PASS, VerdictStatus.FAIL]
    assert result.message == "second"
    assert result.duration_ms >= 0


# ─── Threshold policy, end to end through the evaluator ───────

@pytest.fixture
def threshold_rule():
    assertion = build_assertion(
        {"type": "setting_threshold", "fact": "pwq", "setting": "maxclassrepeat", "max": 4, "min": 1},
        rule_id="SV-230360",
    )
    return Rule(id="SV-230360", title="maxclassrepeat", severity="medium",
                assertions=[assertion], facts={"pwq": PWQ_SPEC})


def pwq_fact(text_settings):
    return {"pwq": Fact.ok(PWQ_SPEC, {"files": ["/etc/security/pwquality.conf"], "settings": text_settings})}


@pytest.mark.parametrize("settings, expected", [
    ({"maxclassrepeat": ["4"]}, VerdictStatus.PASS),
    ({"maxclassrepeat": ["5"]}, VerdictStatus.FAIL),
    ({}, VerdictStatus.FAIL),                           # absent or commented out
    ({"maxclassrepeat": ["3", "4"]}, VerdictStatus.FAIL),
    ({"maxclassrepeat": ["four"]}, VerdictStatus.ERROR),
])
def test_threshold_policy(evaluator, threshold_rule, settings, expected):
    assert evaluator.evaluate(threshold_rule, pwq_fact(settings), HOST).status == expected


def test_threshold_missing_file_is_error(evaluator, threshold_rule):
    facts = {"pwq": Fact.failed(PWQ_SPEC, "file not found: /etc/security/pwquality.conf")}
    result = evaluator.evaluate(threshold_rule, facts, HOST)
    assert result.status == VerdictStatus.ERROR
    assert "file not found" in result.message


def test_registered_condition_gates_rule(evaluator, monkeypatch):
    monkeypatch.setattr("stig_inspector.rules.applicability.CONDITIONS", dict(CONDITIONS))
    register_condition("virtual_machine", lambda ctx: ctx.virtualization_system not in ("none", "docker"),
                       "Control only applies to virtual machines")
    assert is_known_condition("virtual_machine")

    rule = make_rule([constant(True)], only_if=["virtual_machine"])

    assert evaluator.evaluate(rule, out_fact(), HOST).status == VerdictStatus.NOT_APPLICABLE
    assert evaluator.evaluate(rule, out_fact(), NO_GUI).status == VerdictStatus.PASS
