import jsonschema
import yaml
from pathlib import Path
from typing import Any, Dict
from stig_inspector.exceptions import InputResolutionError
from stig_inspector.facts.models import FACT_KINDS
from stig_inspector.utils.logger import get_logger

logger = get_logger()

# JSON schema for validating control files
RULES_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["id", "title", "severity", "facts", "assertions"],
        "properties": {
            "id": {"type": "string", "pattern": "^[A-Za-z0-9_.-]+$"},
            "title": {"type": "string"},
            "severity": {
                "type": "string",
                "enum": ["low", "medium", "high"]
            },
            "impact": {
                "type": "number",
                "minimum": 0.0,
                "maximum": 1.0
            },
            "only_if": {
                "type": "array",
                "items": {"type": "string"}
            },
            "facts": {
                "type": "object",
                "minProperties": 1,
                "additionalProperties": {
                    "type": "object",
                    "required": ["kind"],
                    "properties": {
                        "kind": {"type": "string", "enum": sorted(FACT_KINDS)}
                    }
                }
            },
            "assertions": {
                "type": "array",
                "minItems": 1,
                "items": {
                    "type": "object",
                    "required": ["type", "fact"],
                    "properties": {
                        "type": {"type": "string"},
                        "fact": {"type": "string"},
                        "description": {"type": "string"}
                    }
                }
            },
            "tags": {"type": "object"},
            "disabled": {"type": "boolean"}
        },
        "additionalProperties": False
    }
}


def validate_rules_yaml(yaml_path: Path) -> None:
    """
    Validates a control file against RULES_SCHEMA.
    Raises on invalid format or schema mismatch.
    """
    try:
        content = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
        jsonschema.validate(instance=content, schema=RULES_SCHEMA)
        logger.info(f"[✓] {yaml_path.name} is structurally valid with {len(content)} rules.")
    except jsonschema.ValidationError as ve:
        logger.error(f"[ERROR] Rule schema validation failed: {ve.message}")
        raise
    except yaml.YAMLError as ye:
        logger.error(f"[ERROR] Malformed YAML in {yaml_path.name}: {ye}")
        raise


def validate_rule_entry(entry: Dict[str, Any]) -> None:
    """Validate a single rule entry; raises jsonschema.ValidationError."""
    jsonschema.validate(instance=entry, schema=RULES_SCHEMA["items"])


def resolve_inputs(value: Any, inputs: Dict[str, Any], rule_id: str) -> Any:
    """
    Replace every `{input: name}` mapping inside `value` with the input's value.
    """
    if isinstance(value, dict):
        if set(value) == {"input"}:
            name = value["input"]
            if name not in inputs:
                raise InputResolutionError(rule_id, name)
            return inputs[name]
        return {k: resolve_inputs(v, inputs, rule_id) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_inputs(v, inputs, rule_id) for v in value]
    return value
