import pytest

from stig_inspector.exceptions import FactFormatError, RuleLoadError
from stig_inspector.rules.assertions import build_assertion, parse_maxpoll


def pwquality(*values):
    settings = {"maxclassrepeat": list(values)} if values else {}
    return {"pwq": {"files": ["/etc/security/pwquality.conf"], "settings": settings}}


@pytest.fixture
def threshold():
    return build_assertion(
        {"type": "setting_threshold", "fact": "pwq", "setting": "maxclassrepeat", "max": 4, "min": 1},
        rule_id="SV-230360",
    )


def test_threshold_equal_to_max_passes(threshold):
    assert threshold.check(pwquality("4")).passed


def test_threshold_above_max_fails(threshold):
    outcome = threshold.check(pwquality("5"))
    assert not outcome.passed
    assert "greater than 4" in outcome.message


def test_threshold_commented_out_fails(threshold):
    outcome = threshold.check(pwquality())
    assert not outcome.passed
    assert "not set" in outcome.message


def test_threshold_zero_is_below_min(threshold):
    assert not threshold.check(pwquality("0")).passed


def test_threshold_set_twice_fails(threshold):
    outcome = threshold.check(pwquality("4", "3"))
    assert not outcome.passed
    assert "more than once" in outcome.message


def test_threshold_non_integer_is_malformed(threshold):
    with pytest.raises(FactFormatError):
        threshold.check(pwquality("four"))


def test_setting_equals():
    assertion = build_assertion({"type": "setting_equals", "fact": "pwq", "setting": "maxclassrepeat", "value": 4},
                                rule_id="R")
    assert assertion.check(pwquality("4")).passed
    assert not assertion.check(pwquality("3")).passed


def test_tokens_include_is_order_independent():
    assertion = build_assertion(
        {"type": "tokens_include", "fact": "locks", "token": "/org/gnome/desktop/session/idle-delay"},
        rule_id="SV-244538",
    )
    first = {"locks": {"stdout": "/org/gnome/desktop/session/idle-delay\n/org/gnome/desktop/screensaver/lock-delay\n"}}
    last = {"locks": {"stdout": "/org/gnome/desktop/screensaver/lock-delay\n/org/gnome/desktop/session/idle-delay\n"}}
    missing = {"locks": {"stdout": "/org/gnome/desktop/screensaver/lock-delay\n"}}

    assert assertion.check(first).passed
    assert assertion.check(last).passed
    assert not assertion.check(missing).passed


def test_tokens_include_needs_exact_token():
    assertion = build_assertion({"type": "tokens_include", "fact": "locks", "token": "idle-delay"}, rule_id="R")
    assert not assertion.check({"locks": {"stdout": "/org/gnome/desktop/session/idle-delay"}}).passed


def test_kernel_module_reports_each_problem():
    assertion = build_assertion({"type": "kernel_module", "fact": "sctp", "disabled": True, "blacklisted": True},
                                rule_id="SV-230496")
    ok = {"sctp": {"name": "sctp", "loaded": False, "disabled": True, "blacklisted": True}}
    bad = {"sctp": {"name": "sctp", "loaded": False, "disabled": True, "blacklisted": False}}

    assert assertion.check(ok).passed
    outcome = assertion.check(bad)
    assert not outcome.passed
    assert outcome.message == "sctp is not blacklisted"


AUDIT_PARAMS = {
    "type": "audit_rule",
    "fact": "passwd",
    "permissions": "x",
    "action": "always",
    "list": "exit",
    "fields": ["auid>=1000", "auid!=unset"],
    "key": "privileged-passwd",
}


def audit_entry(**overrides):
    entry = {
        "action": "always",
        "list": "exit",
        "fields": ["path=/usr/bin/passwd", "perm=x", "auid>=1000", "auid!=-1"],
        "permissions": "x",
        "key": "privileged-passwd",
        "path": "/usr/bin/passwd",
    }
    entry.update(overrides)
    return entry


def test_audit_rule_passes_with_equivalent_auid_spelling():
    assertion = build_assertion(AUDIT_PARAMS, rule_id="SV-230422")
    assert assertion.check({"passwd": [audit_entry()]}).passed


def test_audit_rule_fails_without_rule():
    assertion = build_assertion(AUDIT_PARAMS, rule_id="SV-230422")
    outcome = assertion.check({"passwd": []})
    assert not outcome.passed
    assert "no audit rule" in outcome.message


def test_audit_rule_fails_on_wrong_key_and_missing_field():
    assertion = build_assertion(AUDIT_PARAMS, rule_id="SV-230422")
    entry = audit_entry(key="passwd", fields=["path=/usr/bin/passwd", "perm=x", "auid>=1000"])
    outcome = assertion.check({"passwd": [entry]})
    assert not outcome.passed
    assert "missing fields" in outcome.message
    assert "keys are" in outcome.message


SERVERS = ["0.us.pool.ntp.mil", "1.us.pool.ntp.mil"]


def test_timeservers_any():
    assertion = build_assertion({"type": "timeservers", "fact": "chrony", "servers": SERVERS}, rule_id="SV-230484")
    assert assertion.check({"chrony": ["0.us.pool.ntp.mil iburst maxpoll 16"]}).passed
    assert not assertion.check({"chrony": ["0.us.pool.ntp.mil iburst maxpoll 17"]}).passed
    assert not assertion.check({"chrony": ["pool.example.com iburst"]}).passed


def test_timeservers_without_maxpoll_uses_chrony_default():
    assert parse_maxpoll("0.us.pool.ntp.mil iburst") == 10
    assertion = build_assertion({"type": "timeservers", "fact": "chrony", "servers": SERVERS}, rule_id="SV-230484")
    assert assertion.check({"chrony": ["0.us.pool.ntp.mil iburst"]}).passed


def test_timeservers_exact_requires_all():
    assertion = build_assertion({"type": "timeservers", "fact": "chrony", "servers": SERVERS, "exact": True},
                                rule_id="SV-230484")
    assert not assertion.check({"chrony": ["0.us.pool.ntp.mil maxpoll 16"]}).passed
    assert assertion.check({"chrony": ["0.us.pool.ntp.mil maxpoll 16", "1.us.pool.ntp.mil"]}).passed


def test_timeservers_none_configured_fails():
    assertion = build_assertion({"type": "timeservers", "fact": "chrony", "servers": SERVERS}, rule_id="SV-230484")
    outcome = assertion.check({"chrony": []})
    assert not outcome.passed
    assert "no time server" in outcome.message


def test_timeservers_without_authoritative_list_fails():
    assertion = build_assertion({"type": "timeservers", "fact": "chrony", "servers": []}, rule_id="SV-230484")
    outcome = assertion.check({"chrony": ["evil.example.com iburst"]})
    assert not outcome.passed
    assert "no authoritative time servers configured" in outcome.message


@pytest.mark.parametrize("bound", ["min", "max"])
def test_threshold_bounds_must_be_integers(bound):
    params = {"type": "setting_threshold", "fact": "pwq", "setting": "maxclassrepeat", "max": 4, "min": 1}
    params[bound] = "one"
    with pytest.raises(RuleLoadError, match=f"'{bound}' must be an integer"):
        build_assertion(params, rule_id="SV-230360")


def test_threshold_quoted_min_is_coerced():
    assertion = build_assertion({"type": "setting_threshold", "fact": "pwq", "setting": "maxclassrepeat",
                                 "max": 4, "min": "1"}, rule_id="SV-230360")
    outcome = assertion.check(pwquality("0"))
    assert not outcome.passed
    assert "lower than 1" in outcome.message


def test_unknown_assertion_type():
    with pytest.raises(RuleLoadError, match="unknown assertion type"):
        build_assertion({"type": "nope", "fact": "x"}, rule_id="R")


def test_missing_parameter():
    with pytest.raises(RuleLoadError, match="'setting'"):
        build_assertion({"type": "setting_threshold", "fact": "x", "max": 4}, rule_id="R")
