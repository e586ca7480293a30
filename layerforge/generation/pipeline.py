"""Batch generation pipeline.

One run takes a session from PENDING (or an already-claimed GENERATING)
through to COMPLETED:

    generate combinations          0% -> 25%
    for each batch (sequential):   25% -> 75%
        composite every item       (thread pool)
        upload every item          (bounded by a semaphore)
    upload collection metadata     75% (UPLOADING)
    done                           100% (COMPLETED)

Any exception moves the session to ERROR, keeps the last reported
percentage, records the message and re-raises.
"""

import asyncio
import logging
import math
import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from ..core.models import (
    GenerationResult,
    GenerationSession,
    ItemMetadata,
    LayerStore,
    ProgressSnapshot,
    SessionStatus,
)
from ..errors import SessionStateError
from ..storage import Storage
from ..utils.callbacks import ProgressCallback
from .combinations import generate_combinations
from .compositor import DEFAULT_CANVAS_SIZE, composite_image
from .metadata import build_collection_metadata, build_item_metadata
from .progress import ProgressRegistry

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100

COMBINATIONS_DONE_PCT = 25.0
BATCHES_DONE_PCT = 75.0


def artifact_key(session_id: str, index: int) -> str:
    return f"{session_id}/{index}.png"


def metadata_key(session_id: str) -> str:
    return f"{session_id}/metadata.json"


def batch_percentage(batch_index: int, batch_count: int) -> float:
    """Progress after finishing batch `batch_index` (0-based) of `batch_count`."""
    return min(
        COMBINATIONS_DONE_PCT + (batch_index + 1) / batch_count * 50,
        BATCHES_DONE_PCT,
    )


class _Reporter:
    """Publishes one run's snapshots and keeps the percentage monotonic."""

    def __init__(
        self,
        session: GenerationSession,
        registry: ProgressRegistry,
        callback: ProgressCallback | None,
    ):
        self.session = session
        self.registry = registry
        self.callback = callback
        self.percentage = 0.0

    def publish(
        self,
        status: SessionStatus,
        percentage: float | None = None,
        current: int | None = None,
        message: str = "",
        error: str | None = None,
    ) -> ProgressSnapshot:
        if percentage is not None:
            self.percentage = max(self.percentage, percentage)
        if current is not None:
            self.session.produced_count = current

        now = datetime.now()
        self.session.status = status
        self.session.last_activity = now
        if error is not None:
            self.session.error = error

        snapshot = ProgressSnapshot(
            session_id=self.session.id,
            status=status,
            percentage=self.percentage,
            current=self.session.produced_count,
            total=self.session.target_supply,
            message=message,
            error=error,
            updated_at=now,
        )
        self.registry.publish(snapshot)
        if self.callback is not None:
            self.callback(snapshot)
        return snapshot


class GenerationPipeline:
    """Runs generation for one session at a time per call to run().

    A single pipeline can serve several sessions concurrently; all per-run
    state lives in the run itself.
    """

    def __init__(
        self,
        storage: Storage,
        registry: ProgressRegistry | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = 4,
        upload_concurrency: int = 16,
        canvas_size: int = DEFAULT_CANVAS_SIZE,
        on_progress: ProgressCallback | None = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.storage = storage
        self.registry = registry if registry is not None else ProgressRegistry()
        self.batch_size = batch_size
        self.max_workers = max(1, max_workers)
        self.upload_concurrency = max(1, upload_concurrency)
        self.canvas_size = canvas_size
        self.on_progress = on_progress

    async def run(
        self,
        session: GenerationSession,
        store: LayerStore,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> GenerationResult:
        """Generate, composite and upload a session's collection.

        Raises:
            SessionStateError: If the session is neither PENDING nor GENERATING
            Exception: Whatever failed the run, after the session moved to ERROR
        """
        if session.status not in (SessionStatus.PENDING, SessionStatus.GENERATING):
            raise SessionStateError(
                f"Session {session.id} cannot start from status {session.status.value}"
            )

        reporter = _Reporter(session, self.registry, self.on_progress)
        session.error = None
        reporter.publish(
            SessionStatus.GENERATING, 0.0, 0, "Generating trait combinations..."
        )
        logger.info(
            "Generating %d items for session %s", session.target_supply, session.id
        )

        try:
            return await self._run(session, store, reporter, seed, rng)
        except asyncio.CancelledError:
            logger.warning("Generation cancelled for session %s", session.id)
            reporter.publish(
                SessionStatus.ERROR,
                message="Generation failed",
                error="Generation cancelled",
            )
            raise
        except Exception as e:
            logger.exception("Generation failed for session %s", session.id)
            reporter.publish(SessionStatus.ERROR, message="Generation failed", error=str(e))
            raise

    async def _run(
        self,
        session: GenerationSession,
        store: LayerStore,
        reporter: _Reporter,
        seed: int | None,
        rng: random.Random | None,
    ) -> GenerationResult:
        loop = asyncio.get_running_loop()
        order = list(session.layer_order)
        supply = session.target_supply

        pool = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="layerforge-composite"
        )
        try:
            combinations = await loop.run_in_executor(
                pool,
                lambda: generate_combinations(
                    order, session.weights, store, supply, seed=seed, rng=rng
                ),
            )
            reporter.publish(
                SessionStatus.GENERATING, COMBINATIONS_DONE_PCT, 0, "Generating images..."
            )

            semaphore = asyncio.Semaphore(self.upload_concurrency)
            artifact_uris: list[str] = []
            items: list[ItemMetadata] = []
            batch_count = math.ceil(len(combinations) / self.batch_size)

            for batch_index in range(batch_count):
                start = batch_index * self.batch_size
                end = min(start + self.batch_size, len(combinations))
                batch = combinations[start:end]

                images = await asyncio.gather(
                    *(
                        loop.run_in_executor(
                            pool, composite_image, combination, store, order, self.canvas_size
                        )
                        for combination in batch
                    )
                )
                uris = await asyncio.gather(
                    *(
                        self._upload(semaphore, data, artifact_key(session.id, start + offset))
                        for offset, data in enumerate(images)
                    )
                )

                for offset, (combination, uri) in enumerate(zip(batch, uris)):
                    artifact_uris.append(uri)
                    items.append(
                        build_item_metadata(
                            start + offset, combination, order, session.collection, uri
                        )
                    )

                reporter.publish(
                    SessionStatus.GENERATING,
                    batch_percentage(batch_index, batch_count),
                    end,
                    f"Generated {end}/{supply} items...",
                )
                logger.debug(
                    "Session %s: batch %d/%d done", session.id, batch_index + 1, batch_count
                )
        finally:
            # Never join on the event loop thread. Queued composites are
            # dropped; one already running finishes on its worker.
            pool.shutdown(wait=False, cancel_futures=True)

        reporter.publish(
            SessionStatus.UPLOADING, BATCHES_DONE_PCT, len(items), "Uploading metadata..."
        )
        document = build_collection_metadata(session.id, items, session.collection)
        metadata_uri = await self.storage.upload_metadata(document, metadata_key(session.id))

        result = GenerationResult(
            session_id=session.id,
            artifact_uris=artifact_uris,
            metadata_base_uri=metadata_uri,
            total_supply=len(items),
            metadata=items,
            collection=session.collection.model_copy(),
        )

        reporter.publish(
            SessionStatus.COMPLETED, 100.0, len(items), "Generation completed!"
        )
        logger.info("Session %s completed: %d items", session.id, len(items))
        return result

    async def _upload(self, semaphore: asyncio.Semaphore, data: bytes, key: str) -> str:
        async with semaphore:
            return await self.storage.upload(data, key)
