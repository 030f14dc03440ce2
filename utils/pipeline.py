"""
Pipeline runner: wires the agents together and returns a PipelineResult.

Architecture:
  CollectionAgent → InsightAgent → InsightStore.upsert → ReportRenderer
                                                      ↘ JSON export (optional)

Collection and analysis never fail for source/provider problems. Storage
failures (PersistenceError) propagate: losing the day's record silently is
worse than a failed run.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import date
from pathlib import Path
from typing import Optional

from agents.base import Orchestrator
from agents.collector import CollectionAgent
from agents.analyst import InsightAgent
from config.settings import Settings
from db.store import InsightStore
from models.schemas import InsightRecord, ObservationSet, PipelineResult, utcnow
from utils.report import ReportRenderer

logger = logging.getLogger(__name__)


def export_json(
    export_dir: str,
    run_date: date,
    record: InsightRecord,
    observations: ObservationSet,
    version: str,
) -> str:
    """Write market_insights_<date>.json and return its path."""
    path = Path(export_dir)
    path.mkdir(parents=True, exist_ok=True)
    target = path / f"market_insights_{run_date.isoformat()}.json"
    payload = {
        "timestamp": utcnow().isoformat(),
        "analysis": record.to_dict(),
        "pipeline_version": version,
        "observation_count": len(observations),
        "degraded_count": len(observations.degraded()),
        "failures": [f.to_dict() for f in observations.failures],
    }
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info(f"📄 Results saved to: {target}")
    return str(target)


def run_pipeline(
    config: Settings,
    store: Optional[InsightStore] = None,
    collector: Optional[CollectionAgent] = None,
    analyst: Optional[InsightAgent] = None,
    renderer: Optional[ReportRenderer] = None,
    run_date: Optional[date] = None,
    cancel_event: Optional[threading.Event] = None,
    demo: bool = False,
) -> PipelineResult:
    """
    One full pass: collect → analyze → upsert → render.

    Raises
    ------
    ValueError / RuntimeError
        The roster is empty or malformed, or an agent failed unexpectedly.
    PersistenceError
        The insight could not be stored.
    """
    store = store or InsightStore.from_settings(config)
    collector = collector or CollectionAgent(config, cancel_event=cancel_event, demo=demo)
    analyst = analyst or InsightAgent(config)
    renderer = renderer or ReportRenderer()
    run_date = run_date or utcnow().date()
    run_id = str(uuid.uuid4())

    logger.info(f"🚀 Starting TrendSage market insights run {run_id} for {run_date}")

    run = Orchestrator(collector, analyst).execute(config.roster())
    logger.info(run.summary())
    observations = run.observations
    record = run.record

    record_id = store.upsert(run_date, record)
    report = renderer.render(record, report_date=run_date)

    export_path = None
    if config.EXPORT_DIR:
        export_path = export_json(config.EXPORT_DIR, run_date, record, observations, config.APP_VERSION)

    return PipelineResult(
        run_id=run_id,
        run_date=run_date,
        record=record,
        record_id=record_id,
        report=report,
        observation_count=len(observations),
        degraded_count=len(observations.degraded()),
        failures=list(observations.failures),
        cancelled=observations.cancelled,
        export_path=export_path,
    )


def run_once(config: Settings, demo: bool = False, store: Optional[InsightStore] = None) -> bool:
    """
    Run one pipeline pass and print the report.

    Never raises: a failed run is logged and reported as False so a
    long-lived host (scheduler, API worker) keeps going.
    """
    try:
        result = run_pipeline(config, store=store, demo=demo)
    except Exception:
        logger.exception("❌ Pipeline failed")
        return False

    print("\n" + "=" * 60)
    print(result.report)
    print("=" * 60)
    logger.info(
        f"✅ Pipeline completed: {result.observation_count} observations "
        f"({result.degraded_count} degraded, {len(result.failures)} failures), "
        f"insight #{result.record_id} [{result.record.source.value}]"
    )
    return True
