"""
I/O utilities for configuration files and report export.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Union

import yaml

logger = logging.getLogger(__name__)


def load_config(config_path: Union[str, Path]) -> Dict:
    """
    Loads a configuration mapping from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Dict: The loaded configuration (empty if the file is empty).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the top level of the document is not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(config).__name__}")

    logger.info(f"Loaded config from {path}")
    return config


def save_report(report: Dict, out_path: Union[str, Path]) -> Path:
    """
    Writes an analysis report dict as indented JSON.

    Args:
        report: JSON-serializable report.
        out_path: Destination file; parent directories are created.

    Returns:
        Path: The written file.
    """
    path = Path(out_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(report, f, indent=2)
    logger.info(f"Report saved to {path}")
    return path
