class StigInspectorError(Exception):
    """Base class for all stig-inspector errors."""


class RuleLoadError(StigInspectorError):
    """A control definition could not be turned into a Rule."""

    def __init__(self, rule_id: str, reason: str):
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"Rule {rule_id}: {reason}")


class InputResolutionError(RuleLoadError):
    """A rule references an input that is not defined."""

    def __init__(self, rule_id: str, input_name: str):
        self.input_name = input_name
        super().__init__(rule_id, f"undefined input '{input_name}'")


class FactCollectionError(StigInspectorError):
    """A fact provider could not gather a piece of host state."""


class FactFormatError(StigInspectorError):
    """A collected fact does not have the shape an assertion expects."""
