import argparse
from pathlib import Path
from typing import List, Optional

from stig_inspector.config.defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_INPUTS_PATH,
    DEFAULT_MAX_WORKERS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_RULES_PATH,
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="STIG Inspector: RHEL 8 compliance checks")

    parser.add_argument("--rules", type=Path, action="append", dest="rules_files",
                        help=f"Control file(s) to load (default: {DEFAULT_RULES_PATH.name})")
    parser.add_argument("--inputs", type=Path, default=DEFAULT_INPUTS_PATH,
                        help="YAML file with tunable inputs referenced by controls")
    parser.add_argument("--input", action="append", default=[], dest="input_overrides", metavar="NAME=VALUE",
                        help="Override a single input (value parsed as YAML)")
    parser.add_argument("--facts", type=Path, default=None,
                        help="Evaluate against a recorded facts snapshot instead of the live host")
    parser.add_argument("--save-facts", action="store_true",
                        help="Write the collected facts as a replayable snapshot (facts.yaml)")
    parser.add_argument("--root", type=Path, default=Path("/"),
                        help="Filesystem root to inspect (e.g. a mounted image)")
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR,
                        help="Directory to store reports and logs")
    parser.add_argument("--rule", action="append", default=[], dest="rule_ids", metavar="ID",
                        help="Only evaluate this rule id (repeatable)")
    parser.add_argument("--severity", action="append", default=[], choices=["low", "medium", "high"],
                        help="Only evaluate rules of this severity (repeatable)")
    parser.add_argument("--timeout", type=int, default=DEFAULT_COMMAND_TIMEOUT,
                        help="Timeout (seconds) per external command")
    parser.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS,
                        help="Worker threads for fact collection and evaluation")
    parser.add_argument("--serial", action="store_true",
                        help="Collect and evaluate one rule at a time")
    parser.add_argument("--list-rules", action="store_true",
                        help="List loaded rules and exit")
    parser.add_argument("--strict", action="store_true",
                        help="Exit with status 2 when any rule fails or errors")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose logging to console and log file")

    args = parser.parse_args(argv)
    args.rules_files = args.rules_files or [DEFAULT_RULES_PATH]
    return args
