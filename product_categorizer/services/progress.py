from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

The progress display shows how many uploaded files have been handled
(parsed and, in per-file mode, submitted). In non-TTY environments (CI,
piped output) the bar is disabled to avoid ANSI control sequence spam.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker using tqdm for file processing."""

    def __init__(self, total_files: int, *, description: str = "Processing files") -> None:
        """Initialize progress tracker.

        Args:
            total_files: Total number of files to process
            description: Description for the progress bar
        """
        self.total_files = total_files
        self.description = description
        self.current_file = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_file(self, file_name: str) -> None:
        """Start processing a file."""
        self.current_file += 1

        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_name})")

    def finish_file(self, success: bool = True) -> None:
        """Finish processing a file."""
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def set_postfix(self, **kwargs: Any) -> None:
        """Set postfix information (stats) on the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
