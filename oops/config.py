import os

from dotenv import dotenv_values

from oops.errors import PathResolutionError
from oops.paths import global_root

CONFIG_FILE_NAME = "config"

DEFAULT_CONFIG = {
    "default_global": False,  # track new files under ~/.oops instead of ./.oops
    "audit_log": True,  # append events to ~/.oops/logs.jsonl
}

ENV_OVERRIDES = {
    "default_global": "OOPS_DEFAULT_GLOBAL",
    "audit_log": "OOPS_AUDIT_LOG",
}

_TRUE_VALUES = {"true", "1", "yes"}


def config_path():
    """~/.oops/config"""
    return global_root() / CONFIG_FILE_NAME


def _as_bool(value):
    return str(value).strip().lower() in _TRUE_VALUES


def load_file_config():
    """Read ~/.oops/config (KEY=VALUE lines, # comments). Unknown keys are ignored."""
    try:
        path = config_path()
    except PathResolutionError:
        return {}
    if not path.is_file():
        return {}

    raw = dotenv_values(path)
    return {key: _as_bool(raw[key]) for key in DEFAULT_CONFIG if raw.get(key) is not None}


def load_config():
    # Merge order: defaults → ~/.oops/config → environment
    config = {**DEFAULT_CONFIG, **load_file_config()}
    for key, env_var in ENV_OVERRIDES.items():
        if env_var in os.environ:
            config[key] = _as_bool(os.environ[env_var])
    return config


def save_config(updates):
    """Merge updates into ~/.oops/config and rewrite it."""
    config = {**DEFAULT_CONFIG, **load_file_config(), **updates}
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# Oops configuration file",
        "# default_global: Use global storage by default (true/false)",
        "# audit_log: Record commands in ~/.oops/logs.jsonl (true/false)",
        "",
    ]
    for key in DEFAULT_CONFIG:
        lines.append(f"{key}={'true' if config[key] else 'false'}")
    path.write_text("\n".join(lines) + "\n")
    return path
