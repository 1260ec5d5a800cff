"""
Command Line Interface for the PAS migration toolkit.
"""

from .main import cli, main

__all__ = [
    "cli",
    "main",
]
