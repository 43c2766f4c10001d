"""
CSV Import Script for plugin events

Usage:
    python scripts/import_events.py <path-to-csv> [source]

CSV Format:
    event_at,session_id,device_id,event_type,tool,payload_json,user_json

Rows go through the same normalizer as the ingest endpoint, so loose or
missing values get the usual defaults.
"""

import sys
import csv
import json
import asyncio
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.core.database import Database
from app.services.ingestion import IngestionService
from app.services.normalizer import normalize_batch

REQUIRED_HEADERS = {'event_at', 'session_id', 'event_type'}


def _json_object(text: str | None) -> dict:
    if not text or not text.strip():
        return {}
    value = json.loads(text)
    return value if isinstance(value, dict) else {}


def row_to_event(row: dict) -> dict:
    """Map a CSV row onto a raw plugin event"""
    event = {
        "eventAt": row['event_at'],
        "sessionId": row['session_id'],
        "eventType": row['event_type'],
        "deviceId": row.get('device_id'),
        "tool": row.get('tool'),
        "payload": _json_object(row.get('payload_json')),
    }
    user = _json_object(row.get('user_json'))
    if user:
        event["user"] = user
    return event


async def import_csv(file_path: str, source: str = "csv-import", batch_size: int = 1000):
    """
    Import events from CSV file

    Args:
        file_path: Path to CSV file
        source: source label stored on every imported event
        batch_size: Number of events per normalized batch (max 1000)
    """
    file_path = Path(file_path)

    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    print(f"Starting import from: {file_path}")

    database = Database(settings.database_url)
    await database.initialize()

    total_processed = 0
    total_inserted = 0
    total_skipped = 0

    async def flush(events: list) -> None:
        nonlocal total_processed, total_inserted
        documents = normalize_batch({"source": source, "events": events}, max_events=batch_size)
        async with database.session() as session:
            result = await IngestionService(session).ingest_events(documents)

        total_processed += result["accepted"]
        total_inserted += result["inserted"]
        print(f"Processed {total_processed} events | Inserted: {total_inserted}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            reader = csv.DictReader(f)

            # Validate headers
            if not REQUIRED_HEADERS.issubset(reader.fieldnames or []):
                print(f"Error: CSV must have headers: {REQUIRED_HEADERS}")
                print(f"Found headers: {reader.fieldnames}")
                sys.exit(1)

            batch = []

            for i, row in enumerate(reader, 1):
                try:
                    batch.append(row_to_event(row))
                except json.JSONDecodeError as e:
                    total_skipped += 1
                    print(f"Error on row {i}: {e}")
                    continue

                if len(batch) >= batch_size:
                    await flush(batch)
                    batch = []

            # Process remaining events
            if batch:
                await flush(batch)
    finally:
        await database.dispose()

    print("\n" + "=" * 50)
    print("Import completed!")
    print(f"Total processed: {total_processed}")
    print(f"Total inserted: {total_inserted}")
    print(f"Rows skipped: {total_skipped}")
    print("=" * 50)


def main():
    if len(sys.argv) not in (2, 3):
        print("Usage: python scripts/import_events.py <path-to-csv> [source]")
        sys.exit(1)

    file_path = sys.argv[1]
    source = sys.argv[2] if len(sys.argv) == 3 else "csv-import"
    asyncio.run(import_csv(file_path, source))


if __name__ == "__main__":
    main()
