"""Utility helpers with no dependency on the generation pipeline.

- resource_governor: worker and batch size recommendations
- callbacks: progress callback protocols
"""

from .callbacks import ItemProgressCallback, ProgressCallback
from .resource_governor import ResourceGovernor

__all__ = [
    "ItemProgressCallback",
    "ProgressCallback",
    "ResourceGovernor",
]
