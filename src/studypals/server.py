import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel

from studypals.consts import VERSION
from studypals.domain.errors import DeserializationError

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("studypals.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"StudyPals Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("StudyPals Server shutting down...")


app = FastAPI(
    title="StudyPals Server",
    description="Study analytics over flashcard and quiz history.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


def _get_service():
    """Build the analytics service from the resolved configuration."""
    from studypals.application.config import resolve_config
    from studypals.application.factory import get_analytics_service

    return get_analytics_service(resolve_config())


@app.post("/analytics/compute")
async def compute_analytics(
    payload: dict[str, Any] = Body(...),
    user_id: str | None = None,
    now: datetime | None = None,
):
    """
    Compute a snapshot from a history bundle without touching storage.

    The body carries sessions, quizSessions, reviews and deckSubjects. The
    owner comes from the `user_id` query parameter or the body's userId.
    """
    from studypals.application.analytics import calculate_user_analytics
    from studypals.infrastructure.serialization import decode_history, encode

    try:
        bundle = decode_history(payload)
    except DeserializationError as e:
        logger.warning(f"Rejected history payload: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    owner = user_id or bundle.user_id
    if not owner:
        raise HTTPException(status_code=400, detail="A user id is required")

    analytics = calculate_user_analytics(
        owner,
        [s.to_domain() for s in bundle.sessions],
        [q.to_domain() for q in bundle.quiz_sessions],
        [r.to_domain() for r in bundle.reviews],
        now=now,
        deck_subjects=bundle.deck_subjects,
    )
    return encode(analytics)


@app.get("/analytics/{user_id}")
async def get_analytics(user_id: str):
    from studypals.infrastructure.serialization import encode

    try:
        analytics = await _get_service().get_user_analytics(user_id)
    except Exception as e:
        logger.error(f"Loading analytics for {user_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    if analytics is None:
        raise HTTPException(status_code=404, detail=f"No analytics for user '{user_id}'")
    return encode(analytics)


@app.post("/analytics/{user_id}/recalculate")
async def recalculate_analytics(user_id: str):
    """Recompute and store the user's snapshot from stored history."""
    from studypals.infrastructure.serialization import encode

    logger.info(f"Recalculation requested via API for {user_id}")
    try:
        analytics = await _get_service().calculate_and_update_analytics(user_id)
        return encode(analytics)
    except Exception as e:
        logger.error(f"Recalculation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/analytics/{user_id}/summary")
async def get_summary(user_id: str):
    try:
        summary = await _get_service().get_user_performance_summary(user_id)
    except Exception as e:
        logger.error(f"Summary failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    if not summary:
        raise HTTPException(status_code=404, detail=f"No analytics for user '{user_id}'")
    return summary


@app.get("/analytics/{user_id}/subjects/{subject}")
async def get_subject_insights(user_id: str, subject: str):
    try:
        insights = await _get_service().get_subject_insights(user_id, subject)
    except Exception as e:
        logger.error(f"Subject insights failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    if not insights:
        raise HTTPException(
            status_code=404, detail=f"No analytics for subject '{subject}' of user '{user_id}'"
        )
    return insights
