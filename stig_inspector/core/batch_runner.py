import math
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Tuple

from stig_inspector.config.defaults import DEFAULT_COMMAND_TIMEOUT, DEFAULT_MAX_WORKERS
from stig_inspector.engine.evaluator import Evaluator
from stig_inspector.facts.context import EvaluationContext
from stig_inspector.facts.models import Fact, FactSpec
from stig_inspector.facts.providers import FactProvider
from stig_inspector.reports.models import RuleResult
from stig_inspector.rules.applicability import not_applicable_reason
from stig_inspector.rules.rule_model import Rule
from stig_inspector.utils.logger import get_logger

# Slack on top of the per-command timeout before a collection is abandoned
COLLECTION_GRACE_SECONDS = 2


class StigBatchRunner:
    """
    Collects the facts a set of rules needs, then evaluates every rule.

    Identical facts are collected once. Collection runs on a thread pool and
    is bounded in time; anything not back by the deadline is reported as an
    unavailable fact, which the evaluator turns into an ERROR result.
    """

    def __init__(
        self,
        rules: List[Rule],
        provider: FactProvider,
        context: EvaluationContext,
        evaluator: Optional[Evaluator] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        collection_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        parallel: bool = True
    ):
        self.rules = rules
        self.provider = provider
        self.context = context
        self.evaluator = evaluator or Evaluator()
        self.max_workers = max(1, max_workers)
        self.collection_timeout = collection_timeout
        self.parallel = parallel
        self.collected: List[Tuple[FactSpec, Fact]] = []
        self.logger = get_logger()

    def run(self) -> List[RuleResult]:
        mode = "parallel" if self.parallel else "serial"
        self.logger.info(f"[*] Evaluating {len(self.rules)} rules in {mode} mode...")
        start_time = time.perf_counter()

        specs = self._specs_to_collect()
        facts = self.collect_facts(specs)
        self.collected = [(spec, facts[spec.key]) for spec in specs if spec.key in facts]
        results = self._evaluate_parallel(facts) if self.parallel else self._evaluate_serial(facts)

        elapsed_time = time.perf_counter() - start_time
        self.logger.info(f"[✓] Evaluation complete: {len(results)} rules in {elapsed_time:.2f} seconds.")
        return results

    def _specs_to_collect(self) -> List[FactSpec]:
        specs: Dict[str, FactSpec] = {}
        for rule in self.rules:
            # Facts of rules that do not apply are never gathered
            if not_applicable_reason(rule.only_if, self.context):
                continue
            for spec in rule.facts.values():
                specs.setdefault(spec.key, spec)
        return list(specs.values())

    def _spec_timeout(self, spec: FactSpec) -> float:
        # Command facts may declare a longer timeout than the run default
        declared = spec.params.get("timeout")
        if isinstance(declared, (int, float)) and not isinstance(declared, bool):
            return max(self.collection_timeout, declared)
        return self.collection_timeout

    def _collection_deadline(self, specs: List[FactSpec]) -> float:
        count = len(specs)
        waves = math.ceil(count / self.max_workers) if self.parallel else count
        longest = max((self._spec_timeout(s) for s in specs), default=self.collection_timeout)
        return max(1, waves) * (longest + COLLECTION_GRACE_SECONDS)

    def collect_facts(self, specs: List[FactSpec]) -> Dict[str, Fact]:
        if not specs:
            return {}
        self.logger.info(f"[Collector] Collecting {len(specs)} facts...")

        workers = min(self.max_workers, len(specs)) if self.parallel else 1
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fact-collector")
        try:
            futures = {executor.submit(self.provider.collect, spec): spec for spec in specs}
            done, not_done = wait(futures, timeout=self._collection_deadline(specs))

            collected: Dict[str, Fact] = {}
            for future in done:
                spec = futures[future]
                try:
                    collected[spec.key] = future.result()
                except Exception as ex:
                    self.logger.error(f"[Collector] ✗ Collection of {spec.key} failed: {ex}")
                    collected[spec.key] = Fact.failed(spec, f"collector failed: {ex}")

            for future in not_done:
                spec = futures[future]
                self.logger.warning(f"[Collector] ⏱ Collection of {spec.key} did not finish in time")
                collected[spec.key] = Fact.failed(spec, "fact collection timed out")
        finally:
            # Hung collectors are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)

        failed = sum(1 for f in collected.values() if not f.available)
        self.logger.info(f"[Collector] {len(collected) - failed}/{len(collected)} facts collected")
        return collected

    def _facts_for(self, rule: Rule, collected: Dict[str, Fact]) -> Dict[str, Fact]:
        return {name: collected[spec.key] for name, spec in rule.facts.items() if spec.key in collected}

    def _evaluate_one(self, rule: Rule, collected: Dict[str, Fact]) -> RuleResult:
        return self.evaluator.evaluate(rule, self._facts_for(rule, collected), self.context)

    def _evaluate_serial(self, collected: Dict[str, Fact]) -> List[RuleResult]:
        return [self._evaluate_one(rule, collected) for rule in self.rules]

    def _evaluate_parallel(self, collected: Dict[str, Fact]) -> List[RuleResult]:
        if not self.rules:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.rules))) as pool:
            return list(pool.map(lambda r: self._evaluate_one(r, collected), self.rules))
