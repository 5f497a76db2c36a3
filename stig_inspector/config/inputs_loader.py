import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from stig_inspector.config.defaults import DEFAULT_INPUTS
from stig_inspector.utils.logger import get_logger

logger = get_logger()

# Expected Python types for the built-in inputs; unknown keys pass through untouched
INPUT_TYPES = {
    "maxclassrepeat": int,
    "authoritative_timeservers": list,
    "authoritative_timeservers_exact": bool,
}


def validate_inputs(inputs: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for key, value in inputs.items():
        if not isinstance(key, str):
            raise ValueError(f"[InputsLoader] Invalid input name: {key} (must be str)")
        expected = INPUT_TYPES.get(key)
        # bool is an int subclass; reject it where a number is expected
        if expected is int and isinstance(value, bool):
            raise ValueError(f"[InputsLoader] Invalid value for '{key}': {value} (must be int)")
        if expected and not isinstance(value, expected):
            raise ValueError(
                f"[InputsLoader] Invalid value for '{key}': {value!r} (must be {expected.__name__})"
            )
        normalized[key.strip()] = value
    return normalized


def load_inputs(path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Load the inputs file and merge it over the built-in defaults.

    Command-line overrides win over both.
    """
    inputs = dict(DEFAULT_INPUTS)

    if path is not None:
        try:
            with path.open("r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
            if not isinstance(config, dict):
                raise ValueError("[InputsLoader] YAML root must be a dictionary")
            inputs.update(validate_inputs(config))
            logger.info(f"[InputsLoader] Inputs loaded from {path}")
        except Exception as ex:
            logger.error(f"[InputsLoader] Failed to load or validate inputs: {ex}")
            raise

    if overrides:
        inputs.update(validate_inputs(overrides))
        logger.info(f"[InputsLoader] Applied overrides: {sorted(overrides)}")

    return inputs


def parse_input_override(raw: str) -> Dict[str, Any]:
    """Parse a `name=value` CLI override; the value is read as YAML."""
    if "=" not in raw:
        raise ValueError(f"Input override must look like name=value, got: {raw}")
    name, value = raw.split("=", 1)
    return {name.strip(): yaml.safe_load(value)}
