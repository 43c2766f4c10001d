from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from app.api.dependencies import get_initialized_database, require_ingest_token
from app.core.config import settings
from app.core.database import Database
from app.schemas.event import IngestEnvelope, IngestResponse
from app.services.ingestion import IngestionService
from app.services.normalizer import EmptyBatchError, normalize_batch

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/plugin-analytics",
    tags=["events"],
    dependencies=[Depends(require_ingest_token)]
)


@router.post("/ingest", response_model=IngestResponse, status_code=status.HTTP_202_ACCEPTED)
@router.post("/events", response_model=IngestResponse, status_code=status.HTTP_202_ACCEPTED,
             include_in_schema=False)
async def ingest_events(
        envelope: IngestEnvelope,
        database: Database = Depends(get_initialized_database)
):
    """
    Ingest a batch of plugin telemetry events.

    - **events**: events to store (required, extra events past 1000 are dropped)
    - Malformed fields inside events are coerced, never rejected

    Returns how many events were accepted and how many were actually stored.
    """
    try:
        documents = normalize_batch(
            envelope.model_dump(by_alias=True),
            max_events=settings.max_events_per_batch
        )
    except EmptyBatchError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        async with database.session() as db:
            service = IngestionService(db)
            result = await service.ingest_events(documents)

        return IngestResponse(**result)

    except Exception as e:
        logger.error("ingestion_failed", events=len(documents), error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to ingest analytics events"
        )
