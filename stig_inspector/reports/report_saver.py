from datetime import datetime
import json
from pathlib import Path
from typing import List, Optional, Any
import pandas as pd
from stig_inspector.reports.models import RuleResult, RunSummary
from stig_inspector.reports.schemas import to_report_entries
from stig_inspector.utils.logger import get_logger


def make_json_safe(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: make_json_safe(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [make_json_safe(v) for v in obj]
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Path):
        return str(obj)
    return obj


class ReportSaver:
    def __init__(self, run_dir: Path):
        self.run_dir = run_dir
        self.logger = get_logger()
        self.run_dir.mkdir(parents=True, exist_ok=True)

    def _save_json(self, path: Path, data: Any, label: str) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                json.dump(make_json_safe(data), f, indent=2, ensure_ascii=False)
            self.logger.info(f"[✓] {label} written to {path.resolve()}")
            return True
        except (OSError, TypeError, ValueError) as ex:
            self.logger.error(f"[✗] Failed to write {label}: {ex}")
            return False

    def save_results(self, results: List[RuleResult]) -> Path:
        path = self.run_dir / "results.json"
        self._save_json(path, to_report_entries(results), "Results")
        return path

    def save_details(self, results: List[RuleResult]) -> Path:
        path = self.run_dir / "details.json"
        self._save_json(path, [r.to_dict() for r in results], "Per-assertion details")
        return path

    def save_summary(self, summary: RunSummary) -> Path:
        path = self.run_dir / "summary.json"
        self._save_json(path, summary.to_dict(), "Run summary")
        return path

    def save_summary_csv(self, results: List[RuleResult]) -> Optional[Path]:
        if not results:
            self.logger.info("[~] No results to save as CSV.")
            return None

        df = pd.DataFrame(to_report_entries(results))
        path = self.run_dir / "summary.csv"
        try:
            df.to_csv(path, index=False)
            self.logger.info(f"[✓] Saved CSV summary: {path.resolve()}")
            return path
        except OSError as ex:
            self.logger.error(f"[✗] Failed to save CSV summary: {ex}")
            return None

    def save_all(self, results: List[RuleResult], summary: RunSummary) -> None:
        self.save_results(results)
        self.save_details(results)
        self.save_summary(summary)
        self.save_summary_csv(results)
