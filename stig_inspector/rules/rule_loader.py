from pathlib import Path
from typing import Any, Dict, List, Optional
import jsonschema
import yaml

from stig_inspector.exceptions import RuleLoadError
from stig_inspector.facts.models import FactSpec
from stig_inspector.rules.applicability import is_known_condition
from stig_inspector.rules.assertions import build_assertion
from stig_inspector.rules.rule_model import Rule
from stig_inspector.rules.rule_utils import resolve_inputs, validate_rule_entry
from stig_inspector.utils.logger import get_logger

logger = get_logger()


def build_rule(entry: Dict[str, Any], inputs: Dict[str, Any]) -> Rule:
    """Turn one validated control entry into a Rule. Raises RuleLoadError."""
    rule_id = entry["id"]

    unknown = [c for c in entry.get("only_if", []) if not is_known_condition(c)]
    if unknown:
        raise RuleLoadError(rule_id, f"unknown applicability conditions {unknown}")

    facts = {}
    for name, raw in entry["facts"].items():
        params = resolve_inputs({k: v for k, v in raw.items() if k != "kind"}, inputs, rule_id)
        facts[name] = FactSpec(kind=raw["kind"], params=params)

    assertions = []
    for raw in entry["assertions"]:
        params = resolve_inputs(raw, inputs, rule_id)
        if params["fact"] not in facts:
            raise RuleLoadError(rule_id, f"assertion refers to undeclared fact '{params['fact']}'")
        assertions.append(build_assertion(params, rule_id))

    return Rule(
        id=rule_id,
        title=" ".join(entry["title"].split()),
        severity=entry["severity"],
        assertions=assertions,
        facts=facts,
        only_if=list(entry.get("only_if", [])),
        impact=entry.get("impact"),
        tags=entry.get("tags", {}),
        disabled=entry.get("disabled", False),
    )


def load_rules_from_yaml(yaml_path: Path, inputs: Optional[Dict[str, Any]] = None) -> List[Rule]:
    try:
        with yaml_path.open(encoding="utf-8") as f:
            raw_rules = yaml.safe_load(f)
    except Exception as e:
        logger.error(f"[load_rules_from_yaml] Failed to load YAML: {e}")
        return []

    if not isinstance(raw_rules, list):
        logger.error(f"[✗] Expected list of rules in {yaml_path}, got: {type(raw_rules).__name__}")
        return []

    inputs = inputs or {}
    rules: List[Rule] = []
    skipped = 0

    for entry in raw_rules:
        rule_id = entry.get("id", "UNKNOWN") if isinstance(entry, dict) else "UNKNOWN"

        try:
            validate_rule_entry(entry)
            rules.append(build_rule(entry, inputs))
        except jsonschema.ValidationError as ve:
            logger.warning(f"[!] Rule {rule_id} skipped: invalid definition: {ve.message}")
            skipped += 1
        except (RuleLoadError, ValueError, TypeError) as ex:
            logger.warning(f"[!] Rule {rule_id} skipped: {ex}")
            skipped += 1

    logger.info(f"[✓] Loaded {len(rules)} rules from {yaml_path.name} ({skipped} skipped)")
    return rules


def load_rules(paths: List[Path], inputs: Optional[Dict[str, Any]] = None) -> List[Rule]:
    rules: List[Rule] = []
    for path in paths:
        rules.extend(load_rules_from_yaml(path, inputs))
    return rules
