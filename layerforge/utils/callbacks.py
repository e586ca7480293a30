"""Typed callback protocols for progress reporting.

Any callable with a matching signature works; the protocols only document
the shape for type checkers.
"""

from typing import Protocol

from ..core.models import ProgressSnapshot


class ProgressCallback(Protocol):
    """Called with every snapshot a pipeline publishes.

    Args:
        snapshot: The session's new progress record
    """

    def __call__(self, snapshot: ProgressSnapshot) -> None: ...


class ItemProgressCallback(Protocol):
    """Callback for item-based progress (extraction, compositing).

    Args:
        current: Items done so far
        total: Total items to process
    """

    def __call__(self, current: int, total: int) -> None: ...
