import os
import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("boundlearn_config.yaml")

DEFAULTS = {
    "seed": 997,
    "dtype": "float32",
    "device": "cpu",
    "constraint_epsilon": 1e-6,
    "compact_storage": False,
    "autograd_enable": True,
}

# Environment variables that override single keys (env wins over YAML)
ENV_OVERRIDES = {
    "BOUNDLEARN_SEED": ("seed", int),
    "BOUNDLEARN_DTYPE": ("dtype", str),
    "BOUNDLEARN_DEVICE": ("device", str),
}


def load_yaml_config(path: str = None) -> dict:
    """Load configuration from a YAML file. A missing file means defaults."""
    cfg_path = Path(path or os.getenv("BOUNDLEARN_CONFIG", DEFAULT_CONFIG_PATH))
    if not cfg_path.exists():
        logger.debug("No config found at %s, using defaults", cfg_path)
        return {}
    with open(cfg_path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Config file {cfg_path} must contain a mapping, got {type(cfg).__name__}")
    return cfg


def load_env_overrides() -> dict:
    """Collect BOUNDLEARN_* environment overrides."""
    env_config = {}
    for var, (key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value is not None:
            env_config[key] = cast(value)
    return env_config


def merge_configs(base: dict, override: dict) -> dict:
    """Merge overrides into base (override wins)."""
    final = base.copy()
    final.update(override)
    return final


def load_config(path: str = None) -> dict:
    """Main config loader: defaults <- YAML <- environment."""
    cfg = merge_configs(DEFAULTS, load_yaml_config(path))
    return merge_configs(cfg, load_env_overrides())


CONFIG = load_config()
