"""
Config Loader - YAML configuration file loading.
"""

import logging
import yaml
from pathlib import Path
from typing import Dict, Any


logger = logging.getLogger(__name__)


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        config_path: Path to the YAML file

    Returns:
        Dictionary with the configuration (empty for an empty file)

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML file {config_path}: {e}")

    return config or {}


def load_all_configs(config_dir: str = "config") -> Dict[str, Dict[str, Any]]:
    """
    Load every configuration file of the config/ directory.

    Args:
        config_dir: Directory holding the configuration files

    Returns:
        Dictionary with all configurations:
        {
            'detector_params': {...},
            'camera_config': {...}
        }
    """
    config_path = Path(config_dir)

    configs = {}
    config_files = {
        'detector_params': 'detector_params.yaml',
        'camera_config': 'camera_config.yaml'
    }

    for key, filename in config_files.items():
        file_path = config_path / filename
        if file_path.exists():
            configs[key] = load_config(str(file_path))
        else:
            logger.warning("Configuration file %s not found in %s", filename, config_dir)
            configs[key] = {}

    return configs


def get_nested_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Read a nested value from a dictionary using a dot-notation path.

    Args:
        config: Configuration dictionary
        key_path: Dot-notation path (e.g. "detector.max_detection_range")
        default: Value returned when the key does not exist

    Returns:
        The value found, or default

    Example:
        >>> config = {'detector': {'vibration': {'max_pitch': 0.01}}}
        >>> get_nested_value(config, 'detector.vibration.max_pitch')
        0.01
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
