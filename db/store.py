"""
Insight store: one InsightRecord per calendar date, upsert semantics.
"""

import logging
from datetime import date, timezone
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config.settings import Settings
from db.database import get_db, init_db, make_engine, make_session_factory
from db.models import DailyInsight
from models.errors import PersistenceError
from models.schemas import InsightRecord, utcnow

logger = logging.getLogger(__name__)


def _to_row_values(record: InsightRecord) -> dict:
    return {
        "overall_sentiment": record.overall_sentiment,
        "key_insights": list(record.key_insights),
        "competitor_analysis": {
            name: ci.to_dict() for name, ci in record.competitor_analysis.items()
        },
        "recommendations": list(record.recommendations),
        "data_sources_used": list(record.data_sources_used),
        "source": record.source.value,
        "generated_at": record.generated_at,
    }


def _from_row(row: DailyInsight) -> InsightRecord:
    generated_at = row.generated_at
    if generated_at is not None and generated_at.tzinfo is None:
        # sqlite returns naive datetimes
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    return InsightRecord.from_dict({
        "overall_sentiment": row.overall_sentiment,
        "key_insights": row.key_insights,
        "competitor_analysis": row.competitor_analysis,
        "recommendations": row.recommendations,
        "data_sources_used": row.data_sources_used,
        "generated_at": generated_at,
        "source": row.source,
    })


def _find_row(db: Session, run_date: date) -> Optional[DailyInsight]:
    return db.query(DailyInsight).filter(DailyInsight.date == run_date).one_or_none()


class InsightStore:
    """SQLAlchemy-backed store keyed on the run date."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @classmethod
    def from_settings(cls, config: Settings) -> "InsightStore":
        engine = make_engine(config.DATABASE_URL, echo=config.DEBUG)
        try:
            init_db(engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not initialize insight store: {e}") from e
        return cls(make_session_factory(engine))

    def upsert(self, run_date: date, record: InsightRecord) -> int:
        """Insert or overwrite the record for `run_date`. Returns the row id."""
        values = _to_row_values(record)
        try:
            try:
                record_id, action = self._write(run_date, values)
            except IntegrityError:
                # a concurrent run inserted this date after our read; the retry sees its row
                logger.info(f"🔁 Daily insights for {run_date} written concurrently, overwriting")
                record_id, action = self._write(run_date, values)
        except SQLAlchemyError as e:
            logger.error(f"❌ Error storing daily insights for {run_date}: {e}")
            raise PersistenceError(f"Could not store insights for {run_date}: {e}") from e

        logger.info(f"💾 Daily insights {action} for {run_date} (id={record_id})")
        return record_id

    def _write(self, run_date: date, values: dict) -> Tuple[int, str]:
        with get_db(self.session_factory) as db:
            row = _find_row(db, run_date)
            if row is None:
                row = DailyInsight(date=run_date, **values)
                db.add(row)
                action = "inserted"
            else:
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
                action = "updated"
            db.flush()
            return row.id, action

    def get_by_date(self, run_date: date) -> Optional[InsightRecord]:
        try:
            with get_db(self.session_factory) as db:
                row = _find_row(db, run_date)
                return _from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read insights for {run_date}: {e}") from e

    def latest(self) -> Optional[Tuple[date, InsightRecord]]:
        try:
            with get_db(self.session_factory) as db:
                row = db.query(DailyInsight).order_by(DailyInsight.date.desc()).first()
                return (row.date, _from_row(row)) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read latest insights: {e}") from e

    def count(self) -> int:
        try:
            with get_db(self.session_factory) as db:
                return db.query(DailyInsight).count()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not count stored insights: {e}") from e
