"""Storage backends for generated artifacts.

- base.py: the Storage protocol every backend satisfies
- local.py: LocalStorage, files under a root directory
- memory.py: MemoryStorage, objects kept in a dict
"""

from .base import Storage
from .local import LocalStorage
from .memory import MemoryStorage

__all__ = ["Storage", "LocalStorage", "MemoryStorage"]
