from sqlalchemy import insert
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.event import PluginEvent, document_to_row
import structlog

logger = structlog.get_logger()


class IngestionService:
    """Service for best-effort, unordered bulk insertion of normalized events"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def ingest_events(self, documents: list[dict]) -> dict[str, int]:
        """
        Insert normalized event documents.

        The batch goes in as one bulk insert. If the store rejects it for a
        data error, rows are retried one by one inside savepoints so a single
        bad document does not block the rest. Connection or other store
        failures propagate to the caller.

        Returns:
            dict with 'accepted' and 'inserted' counts
        """
        if not documents:
            return {"accepted": 0, "inserted": 0}

        rows = [document_to_row(doc) for doc in documents]

        try:
            await self.db.execute(insert(PluginEvent), rows)
            await self.db.commit()
            inserted = len(rows)
        except (IntegrityError, DataError) as e:
            await self.db.rollback()
            logger.warning("bulk_insert_rejected_retrying_rows", rows=len(rows), error=str(e))
            inserted = await self._insert_individually(rows)

        logger.info(
            "events_ingested",
            accepted=len(rows),
            inserted=inserted,
            failed=len(rows) - inserted
        )

        return {"accepted": len(rows), "inserted": inserted}

    async def _insert_individually(self, rows: list[dict]) -> int:
        inserted = 0
        for index, row in enumerate(rows):
            try:
                async with self.db.begin_nested():
                    await self.db.execute(insert(PluginEvent), [row])
                inserted += 1
            except (IntegrityError, DataError) as e:
                logger.warning("event_insert_failed", index=index, event_type=row["event_type"], error=str(e))
        await self.db.commit()
        return inserted
