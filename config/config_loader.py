import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Mapping

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the YAML configuration file.

    Args:
        config_path: Optional explicit path to the configuration file. If None,
                     load `config.yaml` from the `config` package directory.

    Returns:
        A dictionary containing the configuration settings.
    """
    path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping, got {type(config).__name__}")

    return config


def apply_overrides(config: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of `config` with dotted-key overrides applied.

    ``{'analysis.amplitude': 15}`` sets ``config['analysis']['amplitude']``.
    Entries whose value is None are ignored so that unset CLI flags keep the
    configured value.
    """
    cfg = copy.deepcopy(dict(config))
    for key, value in overrides.items():
        if value is None:
            continue
        parts = key.split('.')
        node = cfg
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
    return cfg
