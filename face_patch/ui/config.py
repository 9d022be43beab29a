"""
Configuration Management

Handles configuration file loading, validation, and default settings
for the face patch editor and command line tool.
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict
import logging

import yaml

logger = logging.getLogger(__name__)


@dataclass
class EditorConfig:
    """
    Editor configuration settings.

    Contains default settings and user-configurable options
    for selection, compositing, generation and display.
    """

    # Selection and compositing
    feather_ratio: float = 0.15
    min_selection_size: int = 50
    max_crop_dim: int = 1024
    source_max_width: int = 1024

    # Generation settings
    model_name: str = "gemini-3-pro-image-preview"
    api_key: Optional[str] = None
    generation_timeout: float = 90.0
    request_timeout: float = 90.0
    max_retries: int = 3
    retry_base_delay: float = 2.0

    # Compare view
    default_split: float = 0.5
    divider_base_width: float = 4.0
    divider_reference_width: float = 800.0

    # Display settings
    display_max_width: int = 1400
    display_max_height: int = 900

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EditorConfig':
        """Create config from dictionary."""
        # Filter out unknown keys
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}

        return cls(**filtered_data)

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ValueError: If any setting is invalid
        """
        if not 0.0 <= self.feather_ratio <= 0.5:
            raise ValueError("Feather ratio must be between 0.0 and 0.5")

        if self.min_selection_size < 0:
            raise ValueError("Minimum selection size must be non-negative")

        if self.max_crop_dim <= 0:
            raise ValueError("Max crop dimension must be positive")

        if self.source_max_width <= 0:
            raise ValueError("Source max width must be positive")

        if self.generation_timeout <= 0 or self.request_timeout <= 0:
            raise ValueError("Timeouts must be positive")

        if self.max_retries < 0:
            raise ValueError("Max retries must be non-negative")

        if self.retry_base_delay < 0:
            raise ValueError("Retry base delay must be non-negative")

        if not 0.0 <= self.default_split <= 1.0:
            raise ValueError("Default split must be between 0.0 and 1.0")

        if self.divider_base_width <= 0 or self.divider_reference_width <= 0:
            raise ValueError("Divider widths must be positive")

        if self.display_max_width <= 0 or self.display_max_height <= 0:
            raise ValueError("Display limits must be positive")

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_levels:
            raise ValueError(f"Invalid log level: {self.log_level}")


def load_config(config_path: str) -> EditorConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to configuration file (.json or .yaml/.yml)

    Returns:
        EditorConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is invalid
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            if config_file.suffix.lower() in ['.yaml', '.yml']:
                data = yaml.safe_load(f)
            elif config_file.suffix.lower() == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {config_file.suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid configuration file format: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a dictionary")

    try:
        config = EditorConfig.from_dict(data)
    except TypeError as e:
        raise ValueError(f"Failed to load configuration: {e}") from e
    config.validate()

    logger.info(f"Loaded configuration from: {config_path}")
    return config


def save_config(config: EditorConfig, config_path: str, format: str = "yaml") -> None:
    """
    Save configuration to file.

    Args:
        config: EditorConfig instance to save
        config_path: Path to save configuration file
        format: File format ("yaml" or "json")

    Raises:
        ValueError: If format is unsupported
    """
    if format.lower() not in ("yaml", "json"):
        raise ValueError(f"Unsupported format: {format}")

    config_file = Path(config_path)
    config_file.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()
    # Never write the key back to disk
    data.pop("api_key", None)

    with open(config_file, 'w', encoding='utf-8') as f:
        if format.lower() == "yaml":
            yaml.safe_dump(data, f, default_flow_style=False, indent=2)
        else:
            json.dump(data, f, indent=2)

    logger.info(f"Saved configuration to: {config_path}")


def get_default_config_path() -> Path:
    """
    Get default configuration file path.

    Returns:
        Path to default config file
    """
    # Try different locations in order of preference
    locations = [
        Path.cwd() / "face_patch.yaml",
        Path.home() / ".config" / "face_patch" / "config.yaml",
        Path.home() / ".face_patch.yaml"
    ]

    for path in locations:
        if path.exists():
            return path

    # Return first location as default
    return locations[0]


def create_sample_config(output_path: str) -> None:
    """
    Create a sample configuration file.

    Args:
        output_path: Path to save sample config
    """
    data = EditorConfig().to_dict()
    data.pop("api_key", None)

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, 'w', encoding='utf-8') as f:
        f.write("# Face Patch - Configuration File\n")
        f.write("# The API key is read from GEMINI_API_KEY; do not store it here.\n\n")
        yaml.safe_dump(data, f, default_flow_style=False, indent=2)

    logger.info(f"Created sample configuration: {output_path}")
