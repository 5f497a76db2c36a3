from pathlib import Path

# ─── Directory Structure ─────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent         # → stig_inspector/
ROOT_DIR = BASE_DIR.parent                                # → project root
RULES_DIR = BASE_DIR / "rules"                            # → stig_inspector/rules
CONFIG_DIR = BASE_DIR / "config"                          # → stig_inspector/config
CONFIG_RULES_DIR = RULES_DIR / "rule_configs"             # → stig_inspector/rules/rule_configs

# ─── Default File Paths ─────────────────────────────────────
DEFAULT_RULES_PATH = CONFIG_RULES_DIR / "rhel8_stig.yaml"
DEFAULT_INPUTS_PATH = CONFIG_DIR / "inputs.yaml"
DEFAULT_OUTPUT_DIR = Path("output")

# ─── Collection / Evaluation ────────────────────────────────
DEFAULT_COMMAND_TIMEOUT = 10      # seconds per external command
DEFAULT_MAX_WORKERS = 8

# Virtualization systems treated as "running inside a container"
CONTAINER_SYSTEMS = {"docker", "podman", "lxc", "lxc-libvirt", "systemd-nspawn", "container-other"}

# ─── Built-in Inputs ────────────────────────────────────────
DEFAULT_INPUTS = {
    "maxclassrepeat": 4,
    "authoritative_timeservers": [],
    "authoritative_timeservers_exact": False,
}
