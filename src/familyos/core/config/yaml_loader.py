"""
Centralized YAML configuration loading utilities.

Provides consistent YAML loading with error handling and logging.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


class YAMLConfigLoader:
    """Centralized YAML configuration loader with consistent error handling."""

    @staticmethod
    def load_yaml(path: Path) -> Dict[str, Any]:
        """
        Load YAML file with consistent error handling and logging.

        Args:
            path: Path to YAML file

        Returns:
            Dictionary containing YAML data, empty dict if file is empty

        Raises:
            FileNotFoundError: If file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not path.exists():
            raise FileNotFoundError(f"YAML file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML file {path}: {e}")
            raise

        if data is None:
            logger.warning(f"YAML file is empty or contains only comments: {path}")
            return {}

        logger.debug(f"Successfully loaded YAML from {path}")
        return data if isinstance(data, dict) else {}
