"""
Core data models / schemas for the TrendSage market insights pipeline.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Competitor:
    name: str
    handle: str                 # social handle, without "@"
    symbol: str                 # market ticker
    website: str = ""


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

class Source(str, Enum):
    QUOTE = "quote"
    NEWS = "news"
    SOCIAL = "social"


# cheapest / most reliable first
SOURCE_ORDER = (Source.QUOTE, Source.NEWS, Source.SOCIAL)


@dataclass(frozen=True)
class Observation:
    competitor: str
    source: Source
    payload: Any                    # opaque provider JSON
    collected_at: datetime = field(default_factory=utcnow)
    degraded: bool = False          # True => locally synthesized sample
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "competitor": self.competitor,
            "source": self.source.value,
            "data": self.payload,
            "collected_at": self.collected_at.isoformat(),
            "degraded": self.degraded,
        }
        if self.note:
            out["note"] = self.note
        return out


@dataclass
class CollectionFailure:
    competitor: str
    source: Source
    error_type: str
    message: str
    attempts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitor": self.competitor,
            "source": self.source.value,
            "error_type": self.error_type,
            "message": self.message,
            "attempts": self.attempts,
        }


@dataclass
class PairOutcome:
    """Result of one (competitor, source) attempt: an observation or an error."""
    competitor: str
    source: Source
    observation: Optional[Observation] = None
    error: Optional[Exception] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.observation is not None and self.error is None


@dataclass
class ObservationSet:
    """Ordered observations of one run (competitor-major, source-minor)."""
    observations: List[Observation] = field(default_factory=list)
    failures: List[CollectionFailure] = field(default_factory=list)
    cancelled: bool = False

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    def __len__(self) -> int:
        return len(self.observations)

    def competitors(self) -> List[str]:
        seen: List[str] = []
        for obs in self.observations:
            if obs.competitor not in seen:
                seen.append(obs.competitor)
        return seen

    def sources_used(self) -> List[str]:
        return sorted({o.source.value for o in self.observations if not o.degraded})

    def degraded(self) -> List[Observation]:
        return [o for o in self.observations if o.degraded]

    def to_list(self) -> List[Dict[str, Any]]:
        return [o.to_dict() for o in self.observations]


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

class InsightSource(str, Enum):
    MODEL = "model"
    FALLBACK = "fallback"


@dataclass
class CompetitorInsight:
    sentiment: float = 0.0          # -1 .. +1
    trend: str = "stable"           # positive | stable | growing | negative | ...

    def to_dict(self) -> Dict[str, Any]:
        return {"sentiment": self.sentiment, "trend": self.trend}


@dataclass
class InsightRecord:
    overall_sentiment: float
    key_insights: List[str] = field(default_factory=list)
    competitor_analysis: Dict[str, CompetitorInsight] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)
    data_sources_used: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utcnow)
    source: InsightSource = InsightSource.FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_sentiment": self.overall_sentiment,
            "key_insights": list(self.key_insights),
            "competitor_analysis": {
                name: ci.to_dict() for name, ci in self.competitor_analysis.items()
            },
            "recommendations": list(self.recommendations),
            "data_sources_used": list(self.data_sources_used),
            "generated_at": self.generated_at.isoformat(),
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InsightRecord":
        generated_at = data.get("generated_at")
        if isinstance(generated_at, str):
            generated_at = datetime.fromisoformat(generated_at)
        return cls(
            overall_sentiment=float(data["overall_sentiment"]),
            key_insights=list(data.get("key_insights") or []),
            competitor_analysis={
                name: CompetitorInsight(
                    sentiment=float(v.get("sentiment", 0.0)),
                    trend=str(v.get("trend", "stable")),
                )
                for name, v in (data.get("competitor_analysis") or {}).items()
            },
            recommendations=list(data.get("recommendations") or []),
            data_sources_used=list(data.get("data_sources_used") or []),
            generated_at=generated_at or utcnow(),
            source=InsightSource(data.get("source", InsightSource.FALLBACK.value)),
        )


# ---------------------------------------------------------------------------
# Pipeline run summary
# ---------------------------------------------------------------------------

@dataclass
class PipelineResult:
    run_id: str
    run_date: date
    record: InsightRecord
    record_id: int
    report: str
    observation_count: int
    degraded_count: int
    failures: List[CollectionFailure] = field(default_factory=list)
    cancelled: bool = False
    export_path: Optional[str] = None
    executed_at: datetime = field(default_factory=utcnow)
