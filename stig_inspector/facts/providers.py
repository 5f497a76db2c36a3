import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Tuple

import yaml

from stig_inspector.config.defaults import DEFAULT_COMMAND_TIMEOUT
from stig_inspector.exceptions import FactCollectionError
from stig_inspector.facts.command_runner import run_command
from stig_inspector.facts.models import FACT_KINDS, CommandOutput, Fact, FactSpec, KernelModuleState
from stig_inspector.facts.parsers import (
    audit_rules_for_path,
    merge_settings,
    module_loaded,
    parse_audit_rules,
    parse_chrony_servers,
    parse_config_settings,
    parse_modprobe_config,
)
from stig_inspector.utils.logger import get_logger

logger = get_logger()

MODPROBE_DIRS = ["/etc/modprobe.d", "/run/modprobe.d", "/usr/lib/modprobe.d", "/lib/modprobe.d"]
DEFAULT_AUDIT_COMMAND = ["auditctl", "-l"]
DEFAULT_CHRONY_CONF = "/etc/chrony.conf"


def spec_identifier(spec: FactSpec) -> str:
    """The human-facing identifier of a fact: a path, command or module name."""
    params = spec.params
    if spec.kind == "command":
        cmd = params.get("command", "")
        return cmd if isinstance(cmd, str) else " ".join(cmd)
    if spec.kind == "kernel_module":
        return params.get("name", "")
    if spec.kind == "path_glob":
        return params.get("pattern", "")
    if spec.kind == "chrony_servers":
        return params.get("path", DEFAULT_CHRONY_CONF)
    return params.get("path", "")


class FactProvider:
    """Interface for anything that can turn a FactSpec into a Fact."""

    source = "unknown"

    def collect(self, spec: FactSpec) -> Fact:
        if spec.kind not in FACT_KINDS:
            return Fact.failed(spec, f"unknown fact kind '{spec.kind}'", source=self.source)
        try:
            value = self._collect(spec)
        except FactCollectionError as ex:
            return Fact.failed(spec, str(ex), source=self.source)
        except (OSError, ValueError, TypeError, KeyError) as ex:
            # Undecodable files, unparsable rule lines, odd snapshot entries
            logger.warning(f"[Collector] ✗ {spec.key}: {type(ex).__name__}: {ex}")
            return Fact.failed(spec, f"{type(ex).__name__}: {ex}", source=self.source)
        return Fact.ok(spec, value, source=self.source)

    def _collect(self, spec: FactSpec) -> Any:
        raise NotImplementedError


class HostFactProvider(FactProvider):
    """
    Collects facts from a live host.

    `root` re-bases every absolute path so an image mounted elsewhere (or a
    temporary directory in tests) can be inspected; commands always run on
    the current host.
    """

    source = "host"

    def __init__(
        self,
        root: Path = Path("/"),
        command_timeout: int = DEFAULT_COMMAND_TIMEOUT,
        runner: Callable[..., CommandOutput] = run_command
    ):
        self.root = root
        self.command_timeout = command_timeout
        self.runner = runner
        self._handlers = {
            "config_file": self._config_file,
            "command": self._command,
            "kernel_module": self._kernel_module,
            "audit_rules": self._audit_rules,
            "chrony_servers": self._chrony_servers,
            "path_glob": self._path_glob,
        }

    def _collect(self, spec: FactSpec) -> Any:
        return self._handlers[spec.kind](spec.params)

    def resolve(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def _read_text(self, path: str) -> str:
        resolved = self.resolve(path)
        try:
            return resolved.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise FactCollectionError(f"file not found: {path}")
        except OSError as ex:
            raise FactCollectionError(f"cannot read {path}: {ex}")

    def _glob(self, pattern: str) -> List[Path]:
        return sorted(self.root.glob(pattern.lstrip("/")))

    def _config_file(self, params: Dict[str, Any]) -> Dict[str, Any]:
        path = params["path"]
        files = [path]
        sources = [parse_config_settings(self._read_text(path))]

        drop_in = params.get("drop_in_glob")
        if drop_in:
            for drop_in_path in self._glob(drop_in):
                if not drop_in_path.is_file():
                    continue
                rel = "/" + str(drop_in_path.relative_to(self.root))
                files.append(rel)
                sources.append(parse_config_settings(self._read_text(rel)))

        return {"files": files, "settings": merge_settings(*sources)}

    def _command(self, params: Dict[str, Any]) -> Dict[str, Any]:
        timeout = params.get("timeout", self.command_timeout)
        return asdict(self.runner(params["command"], timeout=timeout))

    def _kernel_module(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params["name"]
        state = KernelModuleState(name=name)

        for directory in params.get("config_dirs", MODPROBE_DIRS):
            for conf in self._glob(f"{directory}/*.conf"):
                try:
                    parse_modprobe_config(conf.read_text(encoding="utf-8"), name, state)
                except OSError as ex:
                    raise FactCollectionError(f"cannot read {conf}: {ex}")

        proc_modules = self.resolve("/proc/modules")
        if proc_modules.exists():
            state.loaded = module_loaded(proc_modules.read_text(encoding="utf-8"), name)

        return asdict(state)

    def _audit_rules(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        rules_file = params.get("rules_file")
        if rules_file:
            text = self._read_text(rules_file)
        else:
            output = self.runner(params.get("command", DEFAULT_AUDIT_COMMAND), timeout=self.command_timeout)
            if output.exit_status != 0:
                raise FactCollectionError(f"auditctl failed ({output.exit_status}): {output.stderr.strip()}")
            text = output.stdout

        entries = audit_rules_for_path(parse_audit_rules(text), params["path"])
        return [asdict(e) for e in entries]

    def _chrony_servers(self, params: Dict[str, Any]) -> List[str]:
        return parse_chrony_servers(self._read_text(params.get("path", DEFAULT_CHRONY_CONF)))

    def _path_glob(self, params: Dict[str, Any]) -> List[str]:
        return ["/" + str(p.relative_to(self.root)) for p in self._glob(params["pattern"])]


class SnapshotFactProvider(FactProvider):
    """
    Serves facts from a recorded snapshot instead of the live host.

    Snapshot layout: `{kind: {identifier: value}}` plus an optional `context`
    section. Raw text is accepted wherever the host provider would have read
    a file, so snapshots can be made by copying files verbatim.
    """

    source = "snapshot"

    def __init__(self, snapshot: Dict[str, Any]):
        self.snapshot = snapshot or {}

    @classmethod
    def from_file(cls, path: Path) -> "SnapshotFactProvider":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot root must be a mapping: {path}")
        logger.info(f"[Snapshot] Loaded facts snapshot from {path}")
        return cls(data)

    @property
    def context(self) -> Dict[str, Any]:
        return self.snapshot.get("context", {})

    def _lookup(self, kind: str, identifier: str) -> Any:
        section = self.snapshot.get(kind, {})
        if identifier not in section:
            raise FactCollectionError(f"{kind} '{identifier}' not present in snapshot")
        value = section[identifier]
        if value is None:
            raise FactCollectionError(f"{kind} '{identifier}' recorded as unavailable")
        return value

    def _collect(self, spec: FactSpec) -> Any:
        identifier = spec_identifier(spec)

        if spec.kind == "config_file":
            raw = self._lookup("config_file", identifier)
            settings = parse_config_settings(raw) if isinstance(raw, str) else raw
            return {"files": [identifier], "settings": {k: [str(x) for x in (v if isinstance(v, list) else [v])]
                                                        for k, v in settings.items()}}

        if spec.kind == "command":
            raw = self._lookup("command", identifier)
            output = CommandOutput(stdout=raw) if isinstance(raw, str) else CommandOutput(**raw)
            return asdict(output)

        if spec.kind == "kernel_module":
            raw = self._lookup("kernel_module", identifier)
            state = {k: v for k, v in raw.items() if k != "name"}
            return asdict(KernelModuleState(name=identifier, **state))

        if spec.kind == "audit_rules":
            # Either the full rules text, or entries already grouped by watched path
            raw = self.snapshot.get("audit_rules")
            if raw is None:
                raise FactCollectionError("audit_rules not present in snapshot")
            if isinstance(raw, str):
                return [asdict(e) for e in audit_rules_for_path(parse_audit_rules(raw), identifier)]
            return list(self._lookup("audit_rules", identifier))

        if spec.kind == "chrony_servers":
            raw = self._lookup("chrony_servers", identifier)
            return parse_chrony_servers(raw) if isinstance(raw, str) else list(raw)

        return list(self._lookup("path_glob", identifier))


def facts_to_snapshot(facts: Iterable[Tuple[FactSpec, Fact]], context: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a snapshot that SnapshotFactProvider can replay from collected facts.

    Unavailable facts are recorded as None so they replay as unavailable.
    """
    snapshot: Dict[str, Any] = {"context": dict(context)}
    for spec, fact in facts:
        value = fact.value if fact.available else None
        if spec.kind == "config_file" and value is not None:
            value = value["settings"]
        elif spec.kind == "kernel_module" and value is not None:
            value = {k: v for k, v in value.items() if k != "name"}
        elif spec.kind == "audit_rules" and value is not None:
            value = [dict(e, fields=list(e.get("fields", []))) for e in value]
        snapshot.setdefault(spec.kind, {})[spec_identifier(spec)] = value
    return snapshot


def save_snapshot(snapshot: Dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(snapshot, f, sort_keys=True, allow_unicode=True)
    logger.info(f"[Snapshot] Facts snapshot written to {path.resolve()}")
    return path
