"""Config loader for YAML flow files."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from convoflow.config.models import FlowFileConfig
from convoflow.core.errors import ConfigError


class ConfigLoader:
    """Load FlowFileConfig from YAML files."""

    @staticmethod
    def load(path: Path | str) -> FlowFileConfig:
        """Load a dialog definition from a YAML file.

        Args:
            path: Path to a YAML file, or a directory containing flows.yaml

        Returns:
            Parsed FlowFileConfig instance

        Raises:
            FileNotFoundError: If no file exists at the path
            ConfigError: If the YAML is malformed or does not match the schema
        """
        config_path = Path(path)
        if config_path.is_dir():
            config_path = config_path / "flows.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Flow file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            try:
                data: Any = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        return ConfigLoader.load_dict(data, source=str(config_path))

    @staticmethod
    def load_dict(data: Any, source: str = "<dict>") -> FlowFileConfig:
        """Validate an already-parsed mapping."""
        if not isinstance(data, dict):
            raise ConfigError(f"Expecting a mapping at the top of {source}, got {type(data).__name__}")
        try:
            return FlowFileConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid flow file {source}: {e}") from e
