"""
FastAPI Route Handlers
TrendSage Market Insights
"""

import logging
from datetime import date
from functools import lru_cache

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from api.schemas import HealthResponse, InsightResponse, RunAcceptedResponse
from config.settings import Settings
from db.store import InsightStore
from models.errors import PersistenceError
from models.schemas import utcnow
from utils.pipeline import run_once

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache()
def _default_store() -> InsightStore:
    return InsightStore.from_settings(get_settings())


def get_store() -> InsightStore:
    return _default_store()


# ─── Health ──────────────────────────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(config: Settings = Depends(get_settings)):
    return HealthResponse(
        status="ok",
        version=config.APP_VERSION,
        timestamp=utcnow(),
        sources_configured={
            "quote": True,
            "news": bool(config.NEWS_API_KEY),
            "social": bool(config.SOCIAL_BEARER_TOKEN),
        },
        analysis_configured=bool(config.ANALYSIS_API_KEY),
    )


# ─── Insights ────────────────────────────────────────────────────────────────

@router.get("/insights/latest", response_model=InsightResponse, tags=["Insights"])
def get_latest_insights(store: InsightStore = Depends(get_store)):
    """Most recent stored daily insight."""
    try:
        latest = store.latest()
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if latest is None:
        raise HTTPException(status_code=404, detail="No insights stored yet. Run /pipeline/run first.")
    day, record = latest
    return InsightResponse.from_record(day, record)


@router.get("/insights/{day}", response_model=InsightResponse, tags=["Insights"])
def get_insights_by_date(day: date, store: InsightStore = Depends(get_store)):
    """Stored insight for one calendar date (YYYY-MM-DD)."""
    try:
        record = store.get_by_date(day)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if record is None:
        raise HTTPException(status_code=404, detail=f"No insights stored for {day.isoformat()}.")
    return InsightResponse.from_record(day, record)


# ─── Pipeline ────────────────────────────────────────────────────────────────

@router.post("/pipeline/run", response_model=RunAcceptedResponse, status_code=202, tags=["Pipeline"])
def trigger_pipeline(
    background_tasks: BackgroundTasks,
    demo: bool = False,
    config: Settings = Depends(get_settings),
    store: InsightStore = Depends(get_store),
):
    """
    Queue one pipeline pass: Collect → Analyze → Store → Render.
    The run happens after the response is sent; failures are logged.
    """
    background_tasks.add_task(run_once, config, demo, store)
    logger.info(f"Pipeline run queued (demo={demo})")
    return RunAcceptedResponse(
        status="accepted",
        message="Pipeline run queued.",
        demo=demo,
        requested_at=utcnow(),
    )
