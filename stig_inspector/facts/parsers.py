"""
Text parsers turning raw configuration / command output into fact values.

All functions are pure: they take text and return plain data so they can be
exercised without touching the host.
"""
import re
import shlex
from typing import Dict, Iterable, List

from stig_inspector.facts.models import AuditRuleEntry, KernelModuleState

# Audit treats these spellings of an unset login uid identically
_UNSET_AUID_VALUES = {"unset", "4294967295", "-1"}
_AUID_FIELD = re.compile(r"^auid(!=|=)(.+)$")
_AUDIT_LISTS = {"exit", "task", "user", "exclude", "filesystem", "io_uring"}


def _content_lines(text: str) -> Iterable[str]:
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        yield line


def parse_config_settings(text: str) -> Dict[str, List[str]]:
    """
    Parse `key = value` / `key value` settings, keeping every occurrence.

    Commented and blank lines are ignored, so a setting that only appears
    commented out is simply absent from the result.
    """
    settings: Dict[str, List[str]] = {}
    for line in _content_lines(text):
        if "=" in line:
            key, _, value = line.partition("=")
        else:
            parts = line.split(None, 1)
            key, value = parts[0], parts[1] if len(parts) > 1 else ""
        settings.setdefault(key.strip(), []).append(value.strip())
    return settings


def merge_settings(*sources: Dict[str, List[str]]) -> Dict[str, List[str]]:
    merged: Dict[str, List[str]] = {}
    for source in sources:
        for key, values in source.items():
            merged.setdefault(key, []).extend(values)
    return merged


def normalize_audit_field(field: str) -> str:
    match = _AUID_FIELD.match(field)
    if match and match.group(2) in _UNSET_AUID_VALUES:
        return f"auid{match.group(1)}-1"
    return field


def parse_audit_rule_line(line: str) -> AuditRuleEntry:
    tokens = shlex.split(line)
    action, rule_list, perms, key, path = "", "", "", "", ""
    fields: List[str] = []

    it = iter(tokens)
    for token in it:
        if token == "-a":
            action, _, rule_list = next(it, "").partition(",")
            if action in _AUDIT_LISTS:
                action, rule_list = rule_list, action
        elif token == "-w":
            # watch rules are shorthand for always,exit on a path
            path = next(it, "")
            action, rule_list = "always", "exit"
        elif token == "-p":
            perms = next(it, "")
        elif token == "-k":
            key = next(it, "")
        elif token == "-F":
            field = normalize_audit_field(next(it, ""))
            name, _, value = field.partition("=")
            if name == "path":
                path = value
            elif name == "perm":
                perms = value
            elif name == "key":
                key = value
            fields.append(field)
        elif token == "-S":
            next(it, None)

    return AuditRuleEntry(
        action=action,
        list=rule_list,
        fields=fields,
        permissions=perms,
        key=key,
        path=path,
    )


def parse_audit_rules(text: str) -> List[AuditRuleEntry]:
    return [parse_audit_rule_line(line) for line in _content_lines(text) if line.startswith(("-a", "-w"))]


def audit_rules_for_path(entries: Iterable[AuditRuleEntry], path: str) -> List[AuditRuleEntry]:
    return [e for e in entries if e.path == path]


def parse_chrony_servers(text: str) -> List[str]:
    """Return the argument string of every `server` directive."""
    servers = []
    for line in _content_lines(text):
        parts = line.split(None, 1)
        if parts[0] == "server" and len(parts) > 1:
            servers.append(parts[1].strip())
    return servers


def parse_modprobe_config(text: str, module: str, state: KernelModuleState) -> KernelModuleState:
    for line in _content_lines(text):
        parts = line.split()
        if len(parts) >= 2 and parts[0] == "blacklist" and parts[1] == module:
            state.blacklisted = True
        elif len(parts) >= 3 and parts[0] == "install" and parts[1] == module:
            if parts[2] in ("/bin/false", "/bin/true", "/usr/bin/false", "/usr/bin/true"):
                state.disabled = True
    return state


def module_loaded(proc_modules: str, module: str) -> bool:
    return any(line.split()[0] == module for line in proc_modules.splitlines() if line.strip())
