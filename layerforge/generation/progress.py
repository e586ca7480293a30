"""Thread-safe generation progress tracking.

Provides a shared registry that a generation pipeline publishes to and that
observers (the CLI display thread, a session manager) read via get() or
snapshot(). Each publish replaces the session's record wholesale, so readers
never see a half-updated snapshot.
"""

import threading
from dataclasses import dataclass, field

from ..core.models import ProgressSnapshot


@dataclass
class ProgressRegistry:
    """session_id -> latest ProgressSnapshot.

    Only the pipeline that owns a session publishes for it; no history is kept.
    """

    _snapshots: dict[str, ProgressSnapshot] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def publish(self, snapshot: ProgressSnapshot) -> None:
        """Replace the stored snapshot for `snapshot.session_id`."""
        with self._lock:
            self._snapshots[snapshot.session_id] = snapshot

    def get(self, session_id: str) -> ProgressSnapshot | None:
        with self._lock:
            return self._snapshots.get(session_id)

    def remove(self, session_id: str) -> None:
        with self._lock:
            self._snapshots.pop(session_id, None)

    def snapshot(self) -> dict[str, ProgressSnapshot]:
        """Return a copy of every session's latest snapshot.

        Snapshots are frozen models, so the copy can be read without the lock.
        """
        with self._lock:
            return dict(self._snapshots)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
