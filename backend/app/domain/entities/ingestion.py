"""Domain value objects describing the result of ingestion runs."""

from dataclasses import dataclass

from app.domain.entities.resource import ProcessingStatus


@dataclass
class IngestionOutcome:
    """Result of one processing attempt for one resource."""

    resource_id: str
    succeeded: bool
    status: ProcessingStatus | None = None
    chunk_count: int = 0
    error: str | None = None
    systemic: bool = False  # the same failure would hit every other resource
    duration_ms: int = 0


@dataclass
class SweepReport:
    """Summary of a corpus-wide "process all unprocessed" run."""

    candidates: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    aborted: bool = False
    abort_reason: str | None = None
