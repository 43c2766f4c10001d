# Pydantic schemas

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any


class IngestEnvelope(BaseModel):
    """
    Batch sent by the plugin runtime.

    Every field is optional and loosely typed: the normalizer coerces
    values, so validation here only requires a JSON object.
    """

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    source: Any = None
    session_id: Any = None
    device_id: Any = None
    sent_at: Any = None
    runtime: Any = None
    plugin: Any = None
    user: Any = None
    tool: Any = None
    events: Any = Field(default=None, description="Events to ingest (max 1000 per call)")


class IngestResponse(BaseModel):
    """Response for batch ingestion"""

    accepted: int
    inserted: int


class HealthResponse(BaseModel):
    status: str
    app: str
    initialized: bool
