"""
SQLAlchemy ORM Models
TrendSage Market Insights
"""

from sqlalchemy import Column, Integer, Float, String, Date, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

from models.schemas import utcnow

Base = declarative_base()


class DailyInsight(Base):
    """One analysed insight record per calendar date; later runs overwrite."""
    __tablename__ = "daily_insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True)
    overall_sentiment = Column(Float, nullable=False)
    key_insights = Column(JSON, nullable=False, default=list)
    competitor_analysis = Column(JSON, nullable=False, default=dict)
    recommendations = Column(JSON, nullable=False, default=list)
    data_sources_used = Column(JSON, nullable=False, default=list)
    source = Column(String(20), nullable=False)         # model | fallback
    generated_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (Index("ix_daily_insights_source", "source"),)

    def __repr__(self):
        return f"<DailyInsight {self.date} source={self.source} sentiment={self.overall_sentiment}>"
