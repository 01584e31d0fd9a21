"""Port interfaces for hexagonal architecture.

These ports define the contracts between the scoring core and external
adapters. Every baseline source must implement these interfaces.
"""

from src.core.ports.baseline_port import BaselinePort, patch_sort_key, select_baseline

__all__ = [
    "BaselinePort",
    "patch_sort_key",
    "select_baseline",
]
