import socket
from dataclasses import dataclass
from typing import Any, Dict

from stig_inspector.config.defaults import CONTAINER_SYSTEMS
from stig_inspector.exceptions import FactCollectionError
from stig_inspector.facts.providers import HostFactProvider
from stig_inspector.utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class EvaluationContext:
    """Host-wide state shared by every rule in a run, passed explicitly."""
    virtualization_system: str = "none"
    gui_installed: bool = False
    hostname: str = "localhost"

    @property
    def in_container(self) -> bool:
        return self.virtualization_system in CONTAINER_SYSTEMS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvaluationContext":
        return cls(
            virtualization_system=str(data.get("virtualization_system", "none")),
            gui_installed=bool(data.get("gui_installed", False)),
            hostname=str(data.get("hostname", "snapshot")),
        )


def _detect_virtualization(provider: HostFactProvider) -> str:
    try:
        output = provider.runner(["systemd-detect-virt", "--container"], timeout=provider.command_timeout)
        system = output.stdout.strip()
        if output.exit_status == 0 and system and system != "none":
            return system
    except FactCollectionError as ex:
        logger.debug(f"[Context] systemd-detect-virt unavailable: {ex}")

    # Marker files left by container runtimes
    if provider.resolve("/.dockerenv").exists():
        return "docker"
    if provider.resolve("/run/.containerenv").exists():
        return "podman"
    return "none"


def detect_context(provider: HostFactProvider) -> EvaluationContext:
    virtualization = _detect_virtualization(provider)
    gui_installed = any(p.is_file() for p in provider.resolve("/usr/share/xsessions").glob("*"))
    context = EvaluationContext(
        virtualization_system=virtualization,
        gui_installed=gui_installed,
        hostname=socket.gethostname(),
    )
    logger.info(f"[Context] virtualization={context.virtualization_system}, gui_installed={context.gui_installed}")
    return context
