"""
File utilities for path and output management.

This module is the only place the toolkit touches the file system for
exports: directory creation, existence checks, writes, and generation of
non-clobbering file names.
"""

import secrets
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

# Import the globals module to access the global variable dynamically
from . import globals

RANDOM_SUFFIX_LENGTH = 8


def get_output_file_path(default_filename: str, custom_output_file: Optional[str] = None,
                         category: Optional[str] = None) -> Path:
    """Generate output file path based on configuration.

    Args:
        default_filename: Default filename to use if no custom output file specified
        custom_output_file: Custom output file path (optional)
        category: Category subdirectory (optional)

    Returns:
        Path object for the output file
    """
    if custom_output_file:
        output_path = Path(custom_output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    output_dir = get_output_directory(category)
    return output_dir / default_filename


def get_output_directory(category: Optional[str] = None) -> Path:
    """Return (and create) the output directory, optionally with a category subdirectory."""
    # Get the global variable dynamically to ensure we get the current value
    if globals.GLOBAL_OUTPUT_DIR:
        base_output_dir = globals.GLOBAL_OUTPUT_DIR
    else:
        timestamp = datetime.now().strftime('%Y%m%d%H%M')
        base_output_dir = Path.cwd() / f"pas-migration-toolkit-{timestamp}"

    output_dir = base_output_dir / category if category else base_output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def ensure_dir(path: Union[str, Path]) -> Path:
    """Create a directory (and parents) if it does not exist."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def file_exists(path: Union[str, Path]) -> bool:
    return Path(path).is_file()


def write_file(path: Union[str, Path], content: Union[str, bytes]) -> Path:
    """Write text or bytes to a file, creating the parent directory first."""
    file_path = Path(path)
    ensure_dir(file_path.parent)
    if isinstance(content, bytes):
        file_path.write_bytes(content)
    else:
        file_path.write_text(content, encoding='utf-8')
    return file_path


def unique_file_path(path: Union[str, Path]) -> Path:
    """Return ``path`` or, if taken, a sibling with a random suffix before the extension.

    ``report.pdf`` becomes ``report_1a2b3c4d.pdf``.
    """
    file_path = Path(path)
    while file_path.exists():
        suffix = secrets.token_hex(RANDOM_SUFFIX_LENGTH // 2)
        file_path = file_path.with_name(f"{Path(path).stem}_{suffix}{Path(path).suffix}")
    return file_path
