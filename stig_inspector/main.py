import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from stig_inspector.cli.cli import parse_args
from stig_inspector.config.inputs_loader import load_inputs, parse_input_override
from stig_inspector.core.batch_runner import StigBatchRunner
from stig_inspector.facts.context import EvaluationContext, detect_context
from stig_inspector.facts.providers import (
    FactProvider,
    HostFactProvider,
    SnapshotFactProvider,
    facts_to_snapshot,
    save_snapshot,
)
from stig_inspector.reports.report_saver import ReportSaver
from stig_inspector.reports.summary_builder import build_run_summary, format_console_summary
from stig_inspector.rules.registry import RuleRegistry
from stig_inspector.rules.rule_loader import load_rules
from stig_inspector.utils.logger import init_logging, log_run_summary
from stig_inspector.utils.workspace_utils import create_run_directory


def configure_logging(run_dir: Path, verbose: bool):
    log_path = run_dir / "full.log"
    logger = init_logging(verbose=verbose, log_path=log_path)
    logger.info("[✓] Logger initialized.")
    return logger


def build_provider(args) -> Tuple[FactProvider, EvaluationContext]:
    if args.facts:
        provider = SnapshotFactProvider.from_file(args.facts)
        return provider, EvaluationContext.from_dict(provider.context)

    provider = HostFactProvider(root=args.root, command_timeout=args.timeout)
    return provider, detect_context(provider)


def collect_overrides(raw_overrides: List[str]) -> dict:
    overrides = {}
    for raw in raw_overrides:
        overrides.update(parse_input_override(raw))
    return overrides


def run_checks(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    started_at = datetime.now().isoformat(timespec="seconds")

    # Console-only until the run directory is known
    init_logging(verbose=args.verbose, log_to_file=False)

    # Step 1: Load inputs and controls
    missing = [p for p in args.rules_files if not p.is_file()]
    if missing:
        print(f"[ERROR] Control file(s) not found: {', '.join(map(str, missing))}", file=sys.stderr)
        return 1

    inputs = load_inputs(args.inputs, collect_overrides(args.input_overrides))
    registry = RuleRegistry(load_rules(args.rules_files, inputs))
    selected = registry.select(ids=args.rule_ids, severities=args.severity)

    if args.list_rules:
        for rule in selected:
            print(f"{rule.id:<12} {rule.severity:<7} {rule.title}")
        return 0

    if not selected:
        print("[ERROR] No rules selected for evaluation.", file=sys.stderr)
        return 1

    # Step 2: Prepare fact source, run folder and logger
    provider, context = build_provider(args)
    run_dir, _ = create_run_directory(args.output_dir, context.hostname)
    logger = configure_logging(run_dir, verbose=args.verbose)

    # Step 3: Evaluate
    runner = StigBatchRunner(
        rules=selected,
        provider=provider,
        context=context,
        max_workers=args.workers,
        collection_timeout=args.timeout,
        parallel=not args.serial
    )
    results = runner.run()

    # Step 4: Report
    summary = build_run_summary(results, context, started_at=started_at,
                                rules_file=", ".join(map(str, args.rules_files)))
    ReportSaver(run_dir).save_all(results, summary)
    if args.save_facts:
        save_snapshot(facts_to_snapshot(runner.collected, asdict(context)), run_dir / "facts.yaml")
    log_run_summary(logger, context.hostname, summary.counts)
    print(format_console_summary(results, summary))

    if args.strict and not summary.compliant:
        return 2
    return 0


def main():
    """
    Main entry point for running compliance checks.
    Returns 0 on success, 1 on setup error, 2 on findings with --strict.
    """
    try:
        sys.exit(run_checks())
    except Exception as ex:
        print(f"[ERROR] {type(ex).__name__}: {ex}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
