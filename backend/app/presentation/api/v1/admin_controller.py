"""Admin API controller — corpus-wide maintenance operations."""

from fastapi import APIRouter, Depends

from app.application.schemas.resources import SweepReportSchema
from app.application.services.resource_sweep_service import ResourceSweepService
from app.infrastructure.dependencies import get_resource_sweep_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/process-resources", response_model=SweepReportSchema)
async def process_resources(
    service: ResourceSweepService = Depends(get_resource_sweep_service),
):
    """Process every resource that is unprocessed, failed, or stuck mid-pipeline."""
    report = await service.sweep()
    return SweepReportSchema(
        candidates=report.candidates,
        processed=report.processed,
        failed=report.failed,
        skipped=report.skipped,
        aborted=report.aborted,
        abort_reason=report.abort_reason,
    )
