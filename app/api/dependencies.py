# Shared request dependencies: store access, auth gates, query filters

import secrets

import structlog
from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.core.config import settings
from app.core.database import Database, get_database
from app.core.parsing import safe_string
from app.services.filters import EventFilter, parse_event_filter

logger = structlog.get_logger()

basic_auth = HTTPBasic(realm="Plugin Dashboard", auto_error=False)


async def get_initialized_database(database: Database = Depends(get_database)) -> Database:
    """Ensure the schema/indexes exist before the request touches the store"""
    try:
        await database.initialize()
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database initialization failed"
        )
    return database


def _matches(provided: str, expected: str) -> bool:
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_read_access(credentials: HTTPBasicCredentials | None = Depends(basic_auth)) -> None:
    """
    HTTP Basic gate for dashboard reads.

    Open unless both user and password are configured. Missing credentials
    get 401 with a Basic challenge; wrong ones get 403.
    """
    user = settings.dashboard_basic_auth_user
    password = settings.dashboard_basic_auth_pass
    if not user or not password:
        return

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": 'Basic realm="Plugin Dashboard"'}
        )

    user_ok = _matches(credentials.username, user)
    password_ok = _matches(credentials.password, password)
    if not (user_ok and password_ok):
        logger.warning("dashboard_auth_rejected")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid credentials")


async def require_ingest_token(
        x_ingest_token: str | None = Header(default=None),
        x_plugin_ingest_token: str | None = Header(default=None),
) -> None:
    """
    Shared-secret gate for ingestion.

    No configured token leaves the endpoint open. A configured token is
    advisory (mismatches are logged and let through) unless
    `ingest_token_required` is set.
    """
    expected = settings.ingest_token
    if not expected:
        return

    provided = safe_string(x_ingest_token or x_plugin_ingest_token, 240) or ""
    if provided and _matches(provided, expected):
        return

    if not settings.ingest_token_required:
        logger.warning("ingest_token_mismatch_tolerated", token_present=bool(provided))
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid ingest token")


async def get_event_filter(
        from_: str | None = Query(default=None, alias="from", description="Window start (ISO-8601)"),
        to: str | None = Query(default=None, description="Window end (ISO-8601)"),
        tool: str | None = Query(default=None, description="Tool id, or 'all'"),
        auth: str | None = Query(default=None, description="all | authenticated | anonymous"),
        action: str | None = Query(default=None, description="Comma-separated action keys"),
) -> EventFilter:
    return parse_event_filter(
        {"from": from_, "to": to, "tool": tool, "auth": auth, "action": action},
        default_days=settings.default_range_days,
    )
