"""
Assertion kinds available to control files.

Each builder takes the (input-resolved) parameters of one `assertions:` entry
and returns an `Assertion` whose `check` is a pure function of the collected
fact values. A check signals a fact of the wrong shape by raising
`FactFormatError`; the evaluator reports that as an error, not a finding.
"""
import re
from typing import Any, Callable, Dict, List, Optional

from stig_inspector.exceptions import FactFormatError, RuleLoadError
from stig_inspector.facts.parsers import normalize_audit_field
from stig_inspector.rules.rule_model import Assertion, AssertionOutcome

_MAXPOLL = re.compile(r"\bmaxpoll\s+(\d+)")
# chrony's default maxpoll when the option is omitted
DEFAULT_MAXPOLL = 10


def _require(params: Dict[str, Any], name: str, rule_id: str) -> Any:
    if name not in params:
        raise RuleLoadError(rule_id, f"assertion '{params.get('type')}' needs parameter '{name}'")
    return params[name]


def _int_param(params: Dict[str, Any], name: str, rule_id: str) -> int:
    value = _require(params, name, rule_id)
    if isinstance(value, bool):
        raise RuleLoadError(rule_id, f"parameter '{name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RuleLoadError(rule_id, f"parameter '{name}' must be an integer, got {value!r}") from None


def _fact_value(values: Dict[str, Any], name: str, expected: type) -> Any:
    value = values[name]
    if not isinstance(value, expected):
        raise FactFormatError(f"fact '{name}' should be {expected.__name__}, got {type(value).__name__}")
    return value


def _settings(values: Dict[str, Any], fact: str):
    config = _fact_value(values, fact, dict)
    settings = config.get("settings")
    if not isinstance(settings, dict):
        raise FactFormatError(f"fact '{fact}' has no parsed settings")
    files = ", ".join(config.get("files", [])) or "configuration"
    return settings, files


# ─── Setting Assertions ───────────────────────────────────────

def build_setting_threshold(params: Dict[str, Any], rule_id: str) -> Assertion:
    fact = _require(params, "fact", rule_id)
    setting = _require(params, "setting", rule_id)
    maximum = _int_param(params, "max", rule_id)
    minimum: Optional[int] = _int_param(params, "min", rule_id) if "min" in params else None

    def check(values: Dict[str, Any]) -> AssertionOutcome:
        settings, files = _settings(values, fact)
        occurrences = settings.get(setting, [])

        if not occurrences:
            return AssertionOutcome(False, f"{setting} is not set (missing or commented out) in {files}")
        if len(occurrences) > 1:
            return AssertionOutcome(False, f"{setting} is set more than once in {files}: {occurrences}")

        raw = occurrences[0]
        try:
            value = int(raw)
        except ValueError:
            raise FactFormatError(f"{setting} has a non-integer value '{raw}' in {files}")

        if value > maximum:
            return AssertionOutcome(False, f"{setting} is set to {value}, greater than {maximum}")
        if minimum is not None and value < minimum:
            return AssertionOutcome(False, f"{setting} is set to {value}, lower than {minimum}")
        return AssertionOutcome(True, f"{setting} is set to {value}")

    bounds = f"<= {maximum}" if minimum is None else f"between {minimum} and {maximum}"
    return Assertion(description=f"{setting} is set once and {bounds}", facts=(fact,), check=check)


def build_setting_equals(params: Dict[str, Any], rule_id: str) -> Assertion:
    fact = _require(params, "fact", rule_id)
    setting = _require(params, "setting", rule_id)
    expected = str(_require(params, "value", rule_id))

    def check(values: Dict[str, Any]) -> AssertionOutcome:
        settings, files = _settings(values, fact)
        occurrences = settings.get(setting, [])
        if not occurrences:
            return AssertionOutcome(False, f"{setting} is not set (missing or commented out) in {files}")
        if len(occurrences) > 1:
            return AssertionOutcome(False, f"{setting} is set more than once in {files}: {occurrences}")
        if occurrences[0] != expected:
            return AssertionOutcome(False, f"{setting} is '{occurrences[0]}', expected '{expected}'")
        return AssertionOutcome(True, f"{setting} is '{expected}'")

    return Assertion(description=f"{setting} is '{expected}'", facts=(fact,), check=check)


# ─── Command Output ───────────────────────────────────────────

def build_tokens_include(params: Dict[str, Any], rule_id: str) -> Assertion:
    fact = _require(params, "fact", rule_id)
    token = _require(params, "token", rule_id)
    stream = params.get("stream", "stdout")
    message = params.get("message", f"'{token}' not found in command output")

    def check(values: Dict[str, Any]) -> AssertionOutcome:
        output = _fact_value(values, fact, dict)
        text = output.get(stream)
        if not isinstance(text, str):
            raise FactFormatError(f"fact '{fact}' has no '{stream}' text")
        if token in text.split():
            return AssertionOutcome(True, f"'{token}' present in {stream}")
        return AssertionOutcome(False, message)

    return Assertion(description=f"{stream} includes '{token}'", facts=(fact,), check=check)


# ─── Kernel Modules ───────────────────────────────────────────

def build_kernel_module(params: Dict[str, Any], rule_id: str) -> Assertion:
    fact = _require(params, "fact", rule_id)
    expectations = {k: bool(params[k]) for k in ("disabled", "blacklisted", "loaded") if k in params}
    if not expectations:
        raise RuleLoadError(rule_id, "kernel_module assertion needs at least one of disabled/blacklisted/loaded")

    def check(values: Dict[str, Any]) -> AssertionOutcome:
        state = _fact_value(values, fact, dict)
        name = state.get("name", fact)
        problems = []
        for attr, wanted in expectations.items():
            if attr not in state:
                raise FactFormatError(f"kernel module fact '{fact}' lacks '{attr}'")
            if bool(state[attr]) != wanted:
                problems.append(f"{name} is {'not ' if wanted else ''}{attr}")
        if problems:
            return AssertionOutcome(False, "; ".join(problems))
        return AssertionOutcome(True, f"{name}: " + ", ".join(
            f"{'' if v else 'not '}{k}" for k, v in expectations.items()))

    return Assertion(description=f"kernel module state {expectations}", facts=(fact,), check=check)


# ─── Audit Rules ──────────────────────────────────────────────

def build_audit_rule(params: Dict[str, Any], rule_id: str) -> Assertion:
    fact = _require(params, "fact", rule_id)
    permissions = params.get("permissions", "")
    action = params.get("action", "always")
    rule_list = params.get("list", "exit")
    fields = [normalize_audit_field(f) for f in params.get("fields", [])]
    key = params.get("key")

    def check(values: Dict[str, Any]) -> AssertionOutcome:
        entries = _fact_value(values, fact, list)
        if not entries:
            return AssertionOutcome(False, "no audit rule found for the watched path")

        perms = [e.get("permissions", "") for e in entries]
        actions = {e.get("action") for e in entries}
        lists = {e.get("list") for e in entries}
        all_fields = {normalize_audit_field(f) for e in entries for f in e.get("fields", [])}
        keys = {e.get("key") for e in entries}

        problems = []
        for perm in permissions:
            if not any(perm in p for p in perms):
                problems.append(f"permission '{perm}' not audited")
        if actions != {action}:
            problems.append(f"actions are {sorted(map(str, actions))}, expected ['{action}']")
        if lists != {rule_list}:
            problems.append(f"lists are {sorted(map(str, lists))}, expected ['{rule_list}']")
        missing = [f for f in fields if f not in all_fields]
        if missing:
            problems.append(f"missing fields {missing}")
        if key is not None and keys != {key}:
            problems.append(f"keys are {sorted(map(str, keys))}, expected '{key}'")

        if problems:
            return AssertionOutcome(False, "; ".join(problems))
        return AssertionOutcome(True, f"{len(entries)} audit rule(s) match")

    return Assertion(description="audit rule matches expected shape", facts=(fact,), check=check)


# ─── Time Synchronization ─────────────────────────────────────

def parse_maxpoll(server_line: str) -> int:
    match = _MAXPOLL.search(server_line)
    return int(match.group(1)) if match else DEFAULT_MAXPOLL


def build_timeservers(params: Dict[str, Any], rule_id: str) -> Assertion:
    fact = _require(params, "fact", rule_id)
    authoritative: List[str] = list(_require(params, "servers", rule_id) or [])
    exact = bool(params.get("exact", False))
    max_poll = _int_param(params, "max_poll", rule_id) if "max_poll" in params else 16

    def check(values: Dict[str, Any]) -> AssertionOutcome:
        lines = _fact_value(values, fact, list)
        # Nothing can be authoritative against an empty list
        if not authoritative:
            return AssertionOutcome(False, "no authoritative time servers configured")
        if not lines:
            return AssertionOutcome(False, "no time server is configured")

        configured: Dict[str, int] = {}
        for line in lines:
            host = line.split()[0]
            configured.setdefault(host, parse_maxpoll(line))

        valid = [s for s in authoritative if s in configured and configured[s] <= max_poll]
        if exact:
            if len(valid) == len(authoritative):
                return AssertionOutcome(True, "all authoritative time servers configured with valid maxpoll")
            missing = [s for s in authoritative if s not in valid]
            return AssertionOutcome(False, f"authoritative servers missing or maxpoll > {max_poll}: {missing}")

        if valid:
            return AssertionOutcome(True, f"authoritative time server configured: {valid[0]}")
        return AssertionOutcome(
            False, f"none of {authoritative} is configured with maxpoll <= {max_poll} (found {sorted(configured)})")

    scope = "all" if exact else "at least one"
    return Assertion(description=f"{scope} authoritative time server(s) with maxpoll <= {max_poll}",
                     facts=(fact,), check=check)


ASSERTION_BUILDERS: Dict[str, Callable[[Dict[str, Any], str], Assertion]] = {
    "setting_threshold": build_setting_threshold,
    "setting_equals": build_setting_equals,
    "tokens_include": build_tokens_include,
    "kernel_module": build_kernel_module,
    "audit_rule": build_audit_rule,
    "timeservers": build_timeservers,
}


def build_assertion(params: Dict[str, Any], rule_id: str) -> Assertion:
    kind = params.get("type")
    builder = ASSERTION_BUILDERS.get(kind)
    if builder is None:
        raise RuleLoadError(rule_id, f"unknown assertion type '{kind}'")
    assertion = builder(params, rule_id)
    if params.get("description"):
        assertion.description = params["description"]
    return assertion
