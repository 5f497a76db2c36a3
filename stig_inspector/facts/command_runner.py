import subprocess
from typing import List, Union

from stig_inspector.config.defaults import DEFAULT_COMMAND_TIMEOUT
from stig_inspector.exceptions import FactCollectionError
from stig_inspector.facts.models import CommandOutput
from stig_inspector.utils.logger import get_logger

logger = get_logger()


def run_command(command: Union[str, List[str]], timeout: int = DEFAULT_COMMAND_TIMEOUT) -> CommandOutput:
    """
    Run a command and capture its output.

    A string command goes through the shell so control checks can use globs
    and pipes; a list is executed directly. A non-zero exit status is not an
    error here: many checks (grep, systemd-detect-virt) use it as data.

    Raises:
        FactCollectionError: the command could not be started or timed out.
    """
    shell = isinstance(command, str)
    printable = command if shell else " ".join(command)
    logger.debug(f"[CommandRunner] Running: {printable} (timeout={timeout}s)")

    try:
        result = subprocess.run(
            command,
            shell=shell,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"[CommandRunner] ⏱ Timed out after {timeout}s: {printable}")
        raise FactCollectionError(f"command timed out after {timeout}s: {printable}")
    except OSError as ex:
        logger.warning(f"[CommandRunner] ✗ Could not run {printable}: {ex}")
        raise FactCollectionError(f"command could not be started: {printable}: {ex}") from ex

    logger.debug(f"[CommandRunner] {printable} → exit {result.returncode}")
    return CommandOutput(stdout=result.stdout, stderr=result.stderr, exit_status=result.returncode)
