from typing import Callable, Dict, List, Optional

from stig_inspector.facts.context import EvaluationContext

# name -> (predicate, reason reported when the predicate is False)
CONDITIONS: Dict[str, tuple] = {
    "not_container": (
        lambda ctx: not ctx.in_container,
        "Control not applicable within a container",
    ),
    "gui_installed": (
        lambda ctx: ctx.gui_installed,
        "A GUI desktop is not installed, this control is Not Applicable",
    ),
}


def register_condition(name: str, predicate: Callable[[EvaluationContext], bool], reason: str) -> None:
    CONDITIONS[name] = (predicate, reason)


def is_known_condition(name: str) -> bool:
    return name in CONDITIONS


def not_applicable_reason(conditions: List[str], context: EvaluationContext) -> Optional[str]:
    """Return why a rule does not apply, or None when every condition holds."""
    for name in conditions:
        predicate, reason = CONDITIONS[name]
        if not predicate(context):
            return reason
    return None
