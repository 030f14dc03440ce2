"""
Core data models for the TrendSage market insights pipeline.
"""

from .schemas import (
    Competitor,
    Source,
    SOURCE_ORDER,
    Observation,
    CollectionFailure,
    PairOutcome,
    ObservationSet,
    InsightSource,
    CompetitorInsight,
    InsightRecord,
    PipelineResult,
)

__all__ = [
    "Competitor",
    "Source",
    "SOURCE_ORDER",
    "Observation",
    "CollectionFailure",
    "PairOutcome",
    "ObservationSet",
    "InsightSource",
    "CompetitorInsight",
    "InsightRecord",
    "PipelineResult",
]
