import logging
from pathlib import Path
from typing import Dict, Optional

# Centralized logger name
LOGGER_NAME = "stig_inspector"

def init_logging(
    verbose: bool = False,
    log_path: Optional[Path] = None,
    log_to_console: bool = True,
    log_to_file: bool = True
) -> logging.Logger:
    """
    Initializes and configures the main project logger.

    Args:
        verbose (bool): Enable DEBUG logging.
        log_path (Optional[Path]): Optional log file path.
        log_to_console (bool): Enable logging to stderr.
        log_to_file (bool): Enable logging to file.

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Avoid duplicate logs in dev or test environments
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = _create_formatter()

    if log_to_file and log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    return logger


def _create_formatter() -> logging.Formatter:
    return logging.Formatter("[%(levelname)s] %(asctime)s - %(message)s")


def get_logger() -> logging.Logger:
    """
    Retrieve the main project logger.

    Returns:
        logging.Logger
    """
    return logging.getLogger(LOGGER_NAME)


def log_run_summary(logger: logging.Logger, hostname: str, counts: Dict[str, int]) -> None:
    """
    Log the per-verdict counts of a finished compliance run.

    Args:
        logger (logging.Logger): The logger instance to use.
        hostname (str): Host the rules were evaluated against.
        counts (Dict[str, int]): Verdict kind -> number of rules.
    """
    total = sum(counts.values())
    logger.info(f"[{hostname}] Evaluated {total} rules")

    if not total:
        logger.warning(f"[{hostname}] No rules were evaluated; check rule selection and control files.")
        return

    for status, count in counts.items():
        logger.info(f"[{hostname}] {status}: {count}")

    if counts.get("error", 0):
        logger.warning(f"[{hostname}] {counts['error']} rule(s) could not be evaluated; see per-rule messages.")
