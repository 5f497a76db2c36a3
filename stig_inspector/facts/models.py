import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

FACT_KINDS = {
    "config_file",      # key/value settings parsed from a file (+ drop-ins)
    "command",          # stdout / stderr / exit code of a command
    "kernel_module",    # loaded / disabled / blacklisted state of a module
    "audit_rules",      # parsed audit rules watching a path
    "chrony_servers",   # `server` lines of chrony.conf
    "path_glob",        # paths matching a glob pattern
}


@dataclass(frozen=True, eq=False)
class FactSpec:
    kind: str
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Stable identity used to collect a fact once for all rules needing it."""
        return f"{self.kind}:{json.dumps(self.params, sort_keys=True)}"

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FactSpec) and self.key == other.key


@dataclass
class Fact:
    kind: str
    key: str
    value: Any = None
    error: Optional[str] = None
    source: str = "host"

    @property
    def available(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, spec: FactSpec, value: Any, source: str = "host") -> "Fact":
        return cls(kind=spec.kind, key=spec.key, value=value, source=source)

    @classmethod
    def failed(cls, spec: FactSpec, error: str, source: str = "host") -> "Fact":
        return cls(kind=spec.kind, key=spec.key, error=error, source=source)


@dataclass
class CommandOutput:
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0


@dataclass
class KernelModuleState:
    name: str
    loaded: bool = False
    disabled: bool = False
    blacklisted: bool = False


@dataclass
class AuditRuleEntry:
    action: str
    list: str
    fields: List[str] = field(default_factory=list)
    permissions: str = ""
    key: str = ""
    path: str = ""
