"""
Global variables and state management.

This module holds the CLI's persisted output directory. Core components
never read it; they receive directories explicitly.
"""

import json
import logging
from pathlib import Path
from typing import Optional

# Global variable to store the output directory
GLOBAL_OUTPUT_DIR: Optional[Path] = None

CONFIG_DIR_NAME = ".pas_migration_toolkit"


def _config_file() -> Path:
    return Path.home() / CONFIG_DIR_NAME / "output_dir.json"


def load_global_output_directory() -> Optional[Path]:
    """Load the global output directory from configuration file."""
    global GLOBAL_OUTPUT_DIR

    config_file = _config_file()
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = json.load(f)
            output_dir = Path(data.get('output_dir', ''))
            if output_dir.exists() and output_dir.is_dir():
                GLOBAL_OUTPUT_DIR = output_dir
                return GLOBAL_OUTPUT_DIR
        except (OSError, ValueError) as e:
            logging.getLogger(__name__).warning(f"Could not load output directory from config: {e}")

    return None


def save_global_output_directory(output_dir: Path):
    """Save the global output directory to configuration file."""
    global GLOBAL_OUTPUT_DIR

    GLOBAL_OUTPUT_DIR = output_dir

    config_file = _config_file()
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w') as f:
            json.dump({'output_dir': str(output_dir)}, f, indent=2)
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not save output directory to config: {e}")


def set_global_output_directory(directory: str, logger: logging.Logger) -> bool:
    """Set the global output directory.

    Args:
        directory: Directory path to set as global output directory
        logger: Logger instance

    Returns:
        True if successful, False otherwise
    """
    try:
        output_dir = Path(directory).expanduser().resolve()

        if not output_dir.exists():
            output_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created output directory: {output_dir}")

        if not output_dir.is_dir():
            logger.error(f"Path is not a directory: {output_dir}")
            return False

        save_global_output_directory(output_dir)

        logger.info(f"Global output directory set to: {output_dir}")
        return True

    except OSError as e:
        logger.error(f"Failed to set global output directory: {e}")
        return False
