"""Disk space helpers for export-tool."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

BYTES_PER_MEGABYTE = 1024 * 1024


@dataclass(frozen=True)
class DiskUsageCheck:
    """Expected versus available space at a backup target."""

    path: Path
    expected_bytes: int
    available_bytes: int

    @property
    def is_sufficient(self) -> bool:
        return self.expected_bytes <= self.available_bytes


def free_space(path: Path) -> int:
    """Return the bytes available to an unprivileged user at ``path``.

    Raises:
        OSError: If path doesn't exist or is inaccessible
    """
    return shutil.disk_usage(path).free


def check_disk_usage(path: Path, expected_bytes: int) -> DiskUsageCheck:
    """Compare an expected write size with the free space at ``path``."""
    return DiskUsageCheck(path=path, expected_bytes=expected_bytes, available_bytes=free_space(path))


def format_megabytes(bytes_value: float) -> str:
    """Format a byte count in megabytes, e.g. "10.5 MB"."""
    return f"{bytes_value / BYTES_PER_MEGABYTE:.1f} MB"


def format_bytes(bytes_value: float) -> str:
    """Format byte count as human-readable string.

    Args:
        bytes_value: Number of bytes

    Returns:
        Formatted string like "1.5 GB", "256 MB", etc.
    """
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(bytes_value)
    unit_index = 0

    while value >= 1024.0 and unit_index < len(units) - 1:
        value /= 1024.0
        unit_index += 1

    return f"{value:.1f} {units[unit_index]}"
