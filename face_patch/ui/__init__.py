"""
User Interface Module

Configuration, command line interface and the interactive OpenCV viewer.
The CLI and viewer are imported from their modules directly.
"""

from .config import (
    EditorConfig,
    load_config,
    save_config,
    get_default_config_path,
    create_sample_config
)

__all__ = [
    "EditorConfig",
    "load_config",
    "save_config",
    "get_default_config_path",
    "create_sample_config"
]
