"""Worker and batch sizing from canvas size and machine memory.

Compositing one item keeps a few RGBA canvases alive on its worker thread,
and every encoded image of a batch stays in memory until the batch has
been uploaded. Both costs scale with canvas area, so the limits here are
derived from the bytes in one canvas.
"""

import os

BYTES_PER_PIXEL = 4  # RGBA

# Output canvas, decoded trait image and its scaled copy
CANVASES_PER_WORKER = 3

# Share of physical memory a run may plan to use
MEMORY_FRACTION = 0.5

FALLBACK_MEMORY_BYTES = 4 * 1024**3


def canvas_bytes(canvas_size: int) -> int:
    return canvas_size * canvas_size * BYTES_PER_PIXEL


def total_memory_bytes() -> int:
    """Physical memory, or FALLBACK_MEMORY_BYTES where sysconf can't tell."""
    try:
        pages = os.sysconf("SC_PHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (ValueError, OSError, AttributeError):
        return FALLBACK_MEMORY_BYTES
    if pages <= 0 or page_size <= 0:
        return FALLBACK_MEMORY_BYTES
    return pages * page_size


class ResourceGovernor:
    """Caps requested workers and batch size for a given canvas.

    In "manual" mode requested values pass through (floored at 1).

    Args:
        canvas_size: Output canvas edge in pixels
        resource_mode: "auto" or "manual"
        memory_bytes: Memory to plan against (detected if omitted)
        cpu_count: CPUs to plan against (detected if omitted)
    """

    def __init__(
        self,
        canvas_size: int,
        resource_mode: str = "auto",
        memory_bytes: int | None = None,
        cpu_count: int | None = None,
    ):
        self.canvas_size = canvas_size
        self.resource_mode = resource_mode
        self.memory_bytes = memory_bytes if memory_bytes is not None else total_memory_bytes()
        self.cpu_count = max(1, cpu_count or os.cpu_count() or 1)

    @property
    def budget_bytes(self) -> int:
        return int(self.memory_bytes * MEMORY_FRACTION)

    @property
    def worker_bytes(self) -> int:
        return canvas_bytes(self.canvas_size) * CANVASES_PER_WORKER

    def recommend_workers(self, requested: int) -> int:
        """Compositing threads: at most one per CPU and what memory allows."""
        requested = max(1, int(requested))
        if self.resource_mode != "auto":
            return requested
        by_memory = self.budget_bytes // self.worker_bytes
        return max(1, min(requested, self.cpu_count, by_memory))

    def recommend_batch_size(self, requested: int, workers: int = 1) -> int:
        """Items per batch, given the memory `workers` already take."""
        requested = max(1, int(requested))
        if self.resource_mode != "auto":
            return requested
        remaining = max(0, self.budget_bytes - self.worker_bytes * max(1, workers))
        by_memory = remaining // canvas_bytes(self.canvas_size)
        return max(1, min(requested, by_memory))
