"""
System resource monitoring utilities.
"""

from typing import Tuple

import psutil
import torch


class SystemMonitor:
    """System resource monitoring utilities."""

    @staticmethod
    def get_memory_usage() -> Tuple[float, float]:
        """Get current RAM and VRAM usage in MB."""
        ram_usage = psutil.virtual_memory().used / (1024 * 1024)

        vram_usage = 0.0
        if torch.cuda.is_available():
            vram_usage = torch.cuda.memory_allocated() / (1024 * 1024)

        return ram_usage, vram_usage

    @staticmethod
    def get_process_memory() -> float:
        """Resident memory of this process in MB."""
        return psutil.Process().memory_info().rss / (1024 * 1024)
