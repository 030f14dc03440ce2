"""
Pydantic schemas for API request/response validation.
"""

from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import date, datetime

from models.schemas import InsightRecord


# ─── Response Schemas ────────────────────────────────────────────────────────

class CompetitorInsightResponse(BaseModel):
    sentiment: float = Field(..., ge=-1, le=1)
    trend: str


class InsightResponse(BaseModel):
    run_date: date
    overall_sentiment: float = Field(..., ge=-1, le=1)
    key_insights: List[str]
    competitor_analysis: Dict[str, CompetitorInsightResponse]
    recommendations: List[str]
    data_sources_used: List[str]
    generated_at: datetime
    source: str

    @classmethod
    def from_record(cls, day: date, record: InsightRecord) -> "InsightResponse":
        data = record.to_dict()
        data["generated_at"] = record.generated_at
        return cls(run_date=day, **data)


class RunAcceptedResponse(BaseModel):
    status: str
    message: str
    demo: bool
    requested_at: datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    sources_configured: Dict[str, bool]
    analysis_configured: bool
