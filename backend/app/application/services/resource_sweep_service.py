"""Resource sweep service — processes every resource still waiting for ingestion."""

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta, timezone

from app.application.interfaces import ResourceRepository
from app.application.services.resource_processing_service import ResourceProcessingService
from app.domain.entities import IngestionOutcome, SweepReport
from app.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("ResourceSweepService")

ProcessorScope = Callable[[], AbstractAsyncContextManager[ResourceProcessingService]]


class ResourceSweepService:
    """Walks the backlog of unprocessed resources with a small worker pool.

    Each resource is processed inside its own ``processor_scope`` (one unit
    of work per resource), so one failure never rolls back another. A
    systemic failure such as rejected credentials stops the sweep early;
    resources not yet attempted are counted as skipped and stay eligible.
    """

    def __init__(
        self,
        resource_repository: ResourceRepository,
        processor_scope: ProcessorScope,
        *,
        concurrency: int = 3,
        batch_limit: int | None = 500,
        stale_after_seconds: float = 900,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._resource_repo = resource_repository
        self._processor_scope = processor_scope
        self._concurrency = concurrency
        self._batch_limit = batch_limit
        self._stale_after = timedelta(seconds=stale_after_seconds)

    async def process_all_unprocessed(self) -> int:
        """Run a sweep and return how many resources ended up processed."""
        report = await self.sweep()
        return report.processed

    async def sweep(self) -> SweepReport:
        stale_before = datetime.now(timezone.utc) - self._stale_after
        candidates = await self._resource_repo.list_unprocessed(
            stale_before=stale_before,
            limit=self._batch_limit,
        )

        report = SweepReport(candidates=len(candidates))
        plog.separator("Sweep: unprocessed resources")
        plog.step_start(PipelineStage.SWEEP, f"Found {len(candidates)} resources to process")
        if not candidates:
            return report

        queue: asyncio.Queue[str] = asyncio.Queue()
        for resource in candidates:
            if resource.id is not None:
                queue.put_nowait(resource.id)
        stop = asyncio.Event()

        async def _worker() -> None:
            while not stop.is_set():
                try:
                    resource_id = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcome = await self._process_one(resource_id)
                self._record(report, outcome)
                if outcome.systemic and not stop.is_set():
                    report.aborted = True
                    report.abort_reason = outcome.error
                    stop.set()
                    plog.step_error(
                        PipelineStage.SWEEP,
                        f"Systemic failure, stopping sweep: {outcome.error}",
                    )

        workers = min(self._concurrency, queue.qsize())
        await asyncio.gather(*(_worker() for _ in range(workers)))

        report.skipped = queue.qsize()
        plog.step_complete(
            PipelineStage.SWEEP,
            "Sweep finished",
            processed=report.processed,
            failed=report.failed,
            skipped=report.skipped,
        )
        return report

    async def _process_one(self, resource_id: str) -> IngestionOutcome:
        """Process one resource; anything escaping the pipeline counts as a failure."""
        try:
            async with self._processor_scope() as processor:
                return await processor.ingest(resource_id)
        except Exception as e:
            logger.exception("Sweep could not process resource %s", resource_id)
            return IngestionOutcome(
                resource_id=resource_id,
                succeeded=False,
                error=f"{type(e).__name__}: {e}",
                systemic=bool(getattr(e, "systemic", False)),
            )

    @staticmethod
    def _record(report: SweepReport, outcome: IngestionOutcome) -> None:
        if outcome.succeeded:
            report.processed += 1
        else:
            report.failed += 1
