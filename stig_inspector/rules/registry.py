from typing import Dict, Iterable, Iterator, List, Optional

from stig_inspector.rules.rule_model import Rule
from stig_inspector.utils.logger import get_logger

logger = get_logger()


class RuleRegistry:
    """Ordered collection of rules addressed by id."""

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self._rules: Dict[str, Rule] = {}
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        if rule.id in self._rules:
            raise ValueError(f"Duplicate rule id: {rule.id}")
        self._rules[rule.id] = rule
        logger.debug(f"[Registry] Registered {rule.id}")

    def get(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise KeyError(f"Unknown rule id: {rule_id}") from None

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def ids(self) -> List[str]:
        return list(self._rules)

    def set_disabled(self, rule_id: str, disabled: bool = True) -> None:
        self.get(rule_id).disabled = disabled

    def select(
        self,
        ids: Optional[Iterable[str]] = None,
        severities: Optional[Iterable[str]] = None,
        include_disabled: bool = False
    ) -> List[Rule]:
        """Rules matching every given filter, in registration order."""
        wanted_ids = set(ids) if ids else None
        wanted_sev = {s.lower() for s in severities} if severities else None

        if wanted_ids:
            unknown = wanted_ids - set(self._rules)
            if unknown:
                logger.warning(f"[Registry] Unknown rule ids requested: {sorted(unknown)}")

        selected = []
        for rule in self._rules.values():
            if rule.disabled and not include_disabled:
                logger.info(f"[Registry] Skipping disabled rule: {rule.id}")
                continue
            if wanted_ids is not None and rule.id not in wanted_ids:
                continue
            if wanted_sev is not None and rule.severity not in wanted_sev:
                continue
            selected.append(rule)
        return selected
