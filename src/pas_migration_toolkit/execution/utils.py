"""
Execution utility functions.

This module contains utilities shared by the bulk operations: progress bars
and the per-run summary.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from tqdm import tqdm


def create_progress_bar(total: int, desc: str = "Processing", unit: str = "items", disable: bool = False,
                        position: int = None, leave: bool = True):
    """Create a tqdm progress bar with consistent styling.

    Args:
        total: Total number of items to process
        desc: Description for the progress bar
        unit: Unit of measurement (secrets, accounts, sets, etc.)
        disable: Whether to disable the progress bar (for verbose mode)
        position: Position for the progress bar (for multiple bars)
        leave: Whether to leave the progress bar after completion

    Returns:
        tqdm progress bar instance
    """
    return tqdm(
        total=total,
        desc=desc,
        unit=unit,
        disable=disable,
        position=position,
        leave=leave,
        bar_format='{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]',
        colour='green',
        ncols=120
    )


@dataclass
class OperationSummary:
    """Outcome of a bulk operation; one failed item never stops the run."""

    operation: str
    successful: int = 0
    skipped: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def record_failure(self, item: str, error: Exception) -> None:
        self.errors.append((item, str(error)))

    def describe(self) -> str:
        return (f"{self.operation}: {self.successful} succeeded, {self.skipped} skipped, "
                f"{self.failed} failed")
