"""Session manager: owns every session's layers, config, progress and result.

All per-session maps live behind one lock. Generation itself runs outside
the lock; starting it is an atomic check-and-set from PENDING to GENERATING,
so a second start for the same session is rejected instead of running a
second pipeline.

When a sessions directory is configured, layers, configs and results are
persisted there and a session can be rebuilt after a restart with
restore_session().
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from pathlib import Path

from ..config import LayerforgeConfig
from ..core.models import (
    GenerationConfig,
    GenerationResult,
    GenerationSession,
    LayerStore,
    ProgressSnapshot,
    SessionStatus,
    ValidationResult,
)
from ..errors import ConfigurationError, SessionNotFoundError, SessionStateError
from ..generation.pipeline import GenerationPipeline
from ..generation.progress import ProgressRegistry
from ..storage import LocalStorage, Storage
from ..utils.callbacks import ProgressCallback
from ..utils.resource_governor import ResourceGovernor
from .persistence import SessionStore
from .validation import validate_config as _validate_config

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = 3600.0


class SessionManager:
    """Concurrency-safe registry of generation sessions.

    Args:
        storage: Where artifacts and metadata documents are uploaded
        pipeline: Pipeline to run generations with (built from `storage` if omitted)
        sessions_dir: Directory to persist session state in (memory only if omitted)
        ttl_seconds: Idle time after which evict_expired() purges a session
    """

    def __init__(
        self,
        storage: Storage,
        pipeline: GenerationPipeline | None = None,
        sessions_dir: Path | str | None = None,
        ttl_seconds: float = DEFAULT_SESSION_TTL,
    ):
        self.storage = storage
        self.pipeline = pipeline if pipeline is not None else GenerationPipeline(storage)
        self.registry: ProgressRegistry = self.pipeline.registry
        self.persistence = SessionStore(sessions_dir) if sessions_dir is not None else None
        self.ttl = timedelta(seconds=ttl_seconds)

        self._lock = threading.Lock()
        self._layers: dict[str, LayerStore] = {}
        self._configs: dict[str, GenerationConfig] = {}
        self._sessions: dict[str, GenerationSession] = {}
        self._results: dict[str, GenerationResult] = {}
        self._activity: dict[str, datetime] = {}

    @classmethod
    def from_config(
        cls,
        config: LayerforgeConfig,
        storage: Storage | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> "SessionManager":
        """Build a manager (and its pipeline) from resolved settings."""
        if storage is None:
            storage = LocalStorage(config.storage_dir, config.storage.base_url or None)

        gen = config.generation
        governor = ResourceGovernor(gen.canvas_size, resource_mode=gen.resource_mode)
        workers = governor.recommend_workers(gen.max_workers)
        pipeline = GenerationPipeline(
            storage,
            batch_size=governor.recommend_batch_size(gen.batch_size, workers=workers),
            max_workers=workers,
            upload_concurrency=gen.upload_concurrency,
            canvas_size=gen.canvas_size,
            on_progress=on_progress,
        )
        logger.debug(
            "Pipeline: batch_size=%d max_workers=%d upload_concurrency=%d",
            pipeline.batch_size,
            pipeline.max_workers,
            pipeline.upload_concurrency,
        )
        return cls(
            storage,
            pipeline=pipeline,
            sessions_dir=config.sessions_dir,
            ttl_seconds=config.sessions.ttl_seconds,
        )

    # =========================================================================
    # Lookups
    # =========================================================================

    def _touch(self, session_id: str) -> None:
        self._activity[session_id] = datetime.now()

    def _require_layers(self, session_id: str) -> LayerStore:
        with self._lock:
            store = self._layers.get(session_id)
        if store is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return store

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._layers)

    def get_session(self, session_id: str) -> GenerationSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_config(self, session_id: str) -> GenerationConfig | None:
        with self._lock:
            return self._configs.get(session_id)

    def get_layers(self, session_id: str) -> LayerStore | None:
        with self._lock:
            return self._layers.get(session_id)

    def get_progress(self, session_id: str) -> ProgressSnapshot | None:
        return self.registry.get(session_id)

    def get_result(self, session_id: str) -> GenerationResult | None:
        with self._lock:
            return self._results.get(session_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_session(self, store: LayerStore, session_id: str | None = None) -> str:
        """Register an extracted layer store and return its session id."""
        session_id = session_id or uuid.uuid4().hex
        if self.persistence is not None:
            # Raises for ids that are not safe directory names
            self.persistence.session_dir(session_id)

        with self._lock:
            if session_id in self._layers:
                raise SessionStateError(f"Session already exists: {session_id}")
            self._layers[session_id] = store
            self._touch(session_id)

        if self.persistence is not None:
            try:
                self.persistence.save_layers(session_id, store)
            except Exception:
                with self._lock:
                    self._layers.pop(session_id, None)
                    self._activity.pop(session_id, None)
                raise

        logger.info(
            "Created session %s with %d layers (%d traits)",
            session_id,
            len(store),
            store.total_traits,
        )
        return session_id

    def validate_config(self, session_id: str, config: GenerationConfig) -> ValidationResult:
        """Check a config against the session's layers without saving it."""
        return _validate_config(config, self._require_layers(session_id))

    def save_config(self, session_id: str, config: GenerationConfig) -> GenerationSession:
        """Validate and store a config, resetting the session to PENDING.

        Raises:
            SessionNotFoundError: If the session id is unknown
            ConfigurationError: With every validation error, if the config is invalid
            SessionStateError: If a generation is currently running
        """
        result = self.validate_config(session_id, config)
        if not result.valid:
            raise ConfigurationError(result.error_messages)
        for warning in result.warnings:
            logger.info("Session %s: %s", session_id, warning.message)

        session = GenerationSession.from_config(session_id, config)
        with self._lock:
            current = self._sessions.get(session_id)
            if current is not None and current.status.is_running:
                raise SessionStateError(
                    f"Session {session_id} is {current.status.value}; "
                    "configuration cannot change during generation"
                )
            self._configs[session_id] = config
            self._sessions[session_id] = session
            self._results.pop(session_id, None)
            self._touch(session_id)

        self.registry.publish(
            ProgressSnapshot(
                session_id=session_id,
                status=SessionStatus.PENDING,
                total=config.target_supply,
                message="Ready to generate",
            )
        )

        if self.persistence is not None:
            self.persistence.delete_result(session_id)
            self.persistence.save_config(session_id, config)

        logger.info(
            "Saved config for session %s: %d layers, supply %d",
            session_id,
            len(config.layer_order),
            config.target_supply,
        )
        return session

    async def start_generation(
        self, session_id: str, seed: int | None = None
    ) -> GenerationResult:
        """Run the session's generation to completion.

        Raises:
            SessionNotFoundError: If the session id is unknown
            SessionStateError: If no config was saved or the session is not PENDING
            Exception: Whatever failed the pipeline (the session is then in ERROR)
        """
        with self._lock:
            store = self._layers.get(session_id)
            if store is None:
                raise SessionNotFoundError(f"Session not found: {session_id}")
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionStateError(
                    f"Session {session_id} has no saved configuration"
                )
            if session.status != SessionStatus.PENDING:
                raise SessionStateError(
                    f"Session {session_id} is already {session.status.value}"
                )
            session.status = SessionStatus.GENERATING
            self._touch(session_id)

        try:
            result = await self.pipeline.run(session, store, seed=seed)
        finally:
            with self._lock:
                orphaned = session_id not in self._layers
                if not orphaned:
                    self._touch(session_id)
            if orphaned:
                # Cleaned up mid-run; drop what the pipeline published since
                self.registry.remove(session_id)

        if orphaned:
            logger.info("Session %s was cleaned up during generation", session_id)
            return result

        with self._lock:
            self._results[session_id] = result
        if self.persistence is not None:
            self.persistence.save_result(session_id, result)
        return result

    def cleanup_session(self, session_id: str) -> bool:
        """Forget a session and delete its persisted state.

        Safe at any time. An in-flight generation is not halted; its output
        is discarded when it finishes. Returns False if nothing was known.
        """
        with self._lock:
            known = session_id in self._layers
            self._layers.pop(session_id, None)
            self._configs.pop(session_id, None)
            self._sessions.pop(session_id, None)
            self._results.pop(session_id, None)
            self._activity.pop(session_id, None)
        self.registry.remove(session_id)

        removed = False
        if self.persistence is not None:
            removed = self.persistence.delete(session_id)

        if known or removed:
            logger.info("Cleaned up session %s", session_id)
        return known or removed

    def evict_expired(self, now: datetime | None = None) -> list[str]:
        """Purge sessions idle longer than the TTL. Returns the evicted ids.

        Running sessions are never evicted. Persisted session directories not
        loaded in memory are purged by modification time.
        """
        now = now or datetime.now()
        cutoff = now - self.ttl

        with self._lock:
            expired = []
            for session_id, touched in self._activity.items():
                session = self._sessions.get(session_id)
                if session is not None:
                    if session.status.is_running:
                        continue
                    touched = max(touched, session.last_activity)
                if touched < cutoff:
                    expired.append(session_id)
            loaded = set(self._layers)

        for session_id in expired:
            self.cleanup_session(session_id)

        if self.persistence is not None:
            for session_id in self.persistence.stale_sessions(
                self.ttl.total_seconds(), now=now.timestamp()
            ):
                if session_id not in loaded:
                    self.persistence.delete(session_id)
                    expired.append(session_id)

        if expired:
            logger.info("Evicted %d expired sessions", len(expired))
        return expired

    def restore_session(self, session_id: str) -> GenerationSession | None:
        """Reload a persisted session into memory.

        Progress is re-derived: COMPLETED at 100% when a result was saved,
        otherwise PENDING. Returns None when no config was ever saved (the
        layers are still restored).

        Raises:
            SessionNotFoundError: If nothing is persisted for the id
        """
        if self.persistence is None or not self.persistence.exists(session_id):
            raise SessionNotFoundError(f"No persisted session: {session_id}")

        store = self.persistence.load_layers(session_id)
        if store is None:
            raise SessionNotFoundError(f"No persisted layers for session {session_id}")
        config = self.persistence.load_config(session_id)
        result = self.persistence.load_result(session_id)

        session = None
        if config is not None:
            session = GenerationSession.from_config(session_id, config)
            if result is not None:
                session.status = SessionStatus.COMPLETED
                session.produced_count = result.total_supply

        with self._lock:
            self._layers[session_id] = store
            self._touch(session_id)
            if config is not None:
                self._configs[session_id] = config
                self._sessions[session_id] = session
            if result is not None:
                self._results[session_id] = result

        if session is not None:
            completed = session.status == SessionStatus.COMPLETED
            self.registry.publish(
                ProgressSnapshot(
                    session_id=session_id,
                    status=session.status,
                    percentage=100.0 if completed else 0.0,
                    current=session.produced_count,
                    total=session.target_supply,
                    message="Generation completed!" if completed else "Ready to generate",
                )
            )

        logger.info("Restored session %s", session_id)
        return session
