"""
Insight Agent
--------------
Sends the run's ObservationSet to an OpenAI-compatible chat completions
endpoint and normalizes the answer into an InsightRecord.

Model output is untrusted. It is parsed as strict JSON (markdown fences
tolerated) and validated:

  overall_sentiment   required, finite number, clamped when marginally
                      outside [-1, 1], rejected beyond that
  key_insights        list[str]   (missing → [])
  recommendations     list[str]   (missing → [])
  data_sources_used   list[str]   (missing → sources actually observed)
  competitor_analysis mapping; competitors the model skipped get a
                      neutral placeholder (sentiment=0, trend="stable")

Anything that fails (no credential, transport error, bad envelope,
unparseable or invalid JSON) yields the canned fallback record instead.

Input:  ObservationSet
Output: InsightRecord
"""

import json
import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import requests

from agents.base import Agent
from config.settings import Settings
from models.errors import AnalysisParseError
from models.schemas import (
    CompetitorInsight,
    InsightRecord,
    InsightSource,
    ObservationSet,
    utcnow,
)

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are a market analyst. Return only valid JSON."

RESPONSE_SCHEMA = """Return a single JSON object with exactly these keys:
- overall_sentiment: number between -1 and 1
- key_insights: array of strings
- competitor_analysis: object keyed by competitor name, each value {"sentiment": number between -1 and 1, "trend": one of "positive", "stable", "growing", "negative"}
- recommendations: array of strings
- data_sources_used: array of strings
Do not wrap the JSON in prose."""

FALLBACK_OVERALL_SENTIMENT = 0.0
FALLBACK_KEY_INSIGHTS = [
    "Automated market analysis was not available for this run",
    "Competitor figures below are neutral placeholders, not measured sentiment",
]
FALLBACK_RECOMMENDATIONS = [
    "Review the collected source data manually before acting on this report",
    "Configure the analysis provider credential to enable AI-generated insights",
]
NEUTRAL_TREND = "stable"


# ─── Prompt ──────────────────────────────────────────────────────────────────


def build_prompt(observations: ObservationSet) -> str:
    data = json.dumps(observations.to_list(), indent=2, default=str)
    return (
        "Analyze this market data and provide insights in JSON format:\n\n"
        f"{data}\n\n"
        f"{RESPONSE_SCHEMA}"
    )


def token_budget(prompt: str, config: Settings) -> int:
    return min(config.ANALYSIS_MAX_TOKENS, config.ANALYSIS_BASE_TOKENS + len(prompt) // 20)


# ─── Parsing & validation ────────────────────────────────────────────────────


def parse_json_text(text: Optional[str]) -> Any:
    """Parse model text as JSON, stripping a surrounding ``` fence if present."""
    if not text or not text.strip():
        raise AnalysisParseError("Empty model response")
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Model output is not valid JSON. Snippet: {text[:200]}") from e


def coerce_sentiment(value: Any, tolerance: float, field_name: str) -> float:
    if value is None or isinstance(value, bool):
        raise AnalysisParseError(f"{field_name} missing or not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise AnalysisParseError(f"{field_name} is not numeric: {value!r}") from e
    if not math.isfinite(number):
        raise AnalysisParseError(f"{field_name} is not finite: {value!r}")
    if -1.0 <= number <= 1.0:
        return number
    if abs(number) <= 1.0 + tolerance:
        return max(-1.0, min(1.0, number))
    raise AnalysisParseError(f"{field_name} out of range [-1, 1]: {number}")


def _string_list(data: Dict[str, Any], key: str) -> Optional[List[str]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise AnalysisParseError(f"{key} must be an array, got {type(value).__name__}")
    if not all(isinstance(item, str) for item in value):
        raise AnalysisParseError(f"{key} must contain only strings")
    return list(value)


def _competitor_entry(name: str, entry: Any, tolerance: float) -> CompetitorInsight:
    if isinstance(entry, (int, float)) and not isinstance(entry, bool):
        entry = {"sentiment": entry}
    if not isinstance(entry, dict):
        logger.warning(f"competitor_analysis[{name}] malformed ({entry!r}); using placeholder")
        return CompetitorInsight()
    try:
        sentiment = coerce_sentiment(
            entry.get("sentiment", 0.0), tolerance, f"competitor_analysis[{name}].sentiment"
        )
    except AnalysisParseError as e:
        logger.warning(f"{e}; using placeholder")
        return CompetitorInsight()
    trend = entry.get("trend")
    trend = trend.strip().lower() if isinstance(trend, str) and trend.strip() else NEUTRAL_TREND
    return CompetitorInsight(sentiment=sentiment, trend=trend)


def normalize_insight_payload(
    data: Any,
    competitors: Iterable[str],
    default_sources: Iterable[str] = (),
    tolerance: float = 0.25,
) -> InsightRecord:
    """
    Validate a decoded model answer and build an InsightRecord (source=model).
    Raises AnalysisParseError when the answer cannot be trusted.
    """
    if not isinstance(data, dict):
        raise AnalysisParseError(f"Model output must be a JSON object, got {type(data).__name__}")

    overall = coerce_sentiment(data.get("overall_sentiment"), tolerance, "overall_sentiment")
    key_insights = _string_list(data, "key_insights") or []
    recommendations = _string_list(data, "recommendations") or []
    sources = _string_list(data, "data_sources_used")
    if not sources:
        sources = sorted(set(default_sources))

    raw_analysis = data.get("competitor_analysis")
    if raw_analysis is None:
        raw_analysis = {}
    if not isinstance(raw_analysis, dict):
        raise AnalysisParseError("competitor_analysis must be an object")

    analysis: Dict[str, CompetitorInsight] = {}
    by_lower = {str(k).strip().lower(): (str(k), v) for k, v in raw_analysis.items()}
    for name in competitors:
        match = by_lower.pop(name.lower(), None)
        if match is None:
            logger.info(f"Model omitted {name}; using neutral placeholder")
            analysis[name] = CompetitorInsight()
        else:
            analysis[name] = _competitor_entry(name, match[1], tolerance)
    for original_name, entry in by_lower.values():
        analysis[original_name] = _competitor_entry(original_name, entry, tolerance)

    return InsightRecord(
        overall_sentiment=overall,
        key_insights=key_insights,
        competitor_analysis=analysis,
        recommendations=recommendations,
        data_sources_used=list(sources),
        source=InsightSource.MODEL,
    )


def fallback_record(competitors: Iterable[str], sources_used: Iterable[str] = ()) -> InsightRecord:
    """The canned, non-AI record. Neutral placeholder for every competitor."""
    return InsightRecord(
        overall_sentiment=FALLBACK_OVERALL_SENTIMENT,
        key_insights=list(FALLBACK_KEY_INSIGHTS),
        competitor_analysis={name: CompetitorInsight() for name in competitors},
        recommendations=list(FALLBACK_RECOMMENDATIONS),
        data_sources_used=sorted(set(sources_used)),
        source=InsightSource.FALLBACK,
    )


# ─── InsightAgent ────────────────────────────────────────────────────────────


class InsightAgent(Agent):
    """
    Agent 2: AI insight extraction

    Input:  ObservationSet
    Output: InsightRecord (never raises for provider problems)
    """

    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        super().__init__(name="InsightAgent")
        self.config = config
        self.session = session or requests.Session()

    def run(self, observations: ObservationSet) -> InsightRecord:
        return self.analyze(observations)

    def analyze(self, observations: ObservationSet) -> InsightRecord:
        competitors = self._competitor_names(observations)
        sources_used = observations.sources_used()

        if not self.config.ANALYSIS_API_KEY:
            self.logger.info("⚠️ Analysis API key not configured - using fallback analysis")
            return self._stamp(fallback_record(competitors, sources_used))

        try:
            text = self._complete(build_prompt(observations))
            data = parse_json_text(text)
            record = normalize_insight_payload(
                data,
                competitors,
                default_sources=sources_used,
                tolerance=self.config.SENTIMENT_CLAMP_TOLERANCE,
            )
        except AnalysisParseError as e:
            self.logger.warning(f"⚠️ Discarding model response: {e} - using fallback analysis")
            return self._stamp(fallback_record(competitors, sources_used))
        except requests.RequestException as e:
            self.logger.warning(f"⚠️ Analysis provider call failed: {e} - using fallback analysis")
            return self._stamp(fallback_record(competitors, sources_used))

        self.logger.info(
            f"✅ AI analysis completed (overall sentiment {record.overall_sentiment:+.2f})"
        )
        return self._stamp(record)

    def _competitor_names(self, observations: ObservationSet) -> List[str]:
        names = observations.competitors()
        for competitor in self.config.roster():
            if competitor.name not in names:
                names.append(competitor.name)
        return names

    def _complete(self, prompt: str) -> str:
        """One chat-completions call. Returns the assistant message text."""
        resp = self.session.post(
            self.config.ANALYSIS_API_URL,
            headers={
                "Authorization": f"Bearer {self.config.ANALYSIS_API_KEY}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.config.ANALYSIS_MODEL,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.config.ANALYSIS_TEMPERATURE,
                "max_tokens": token_budget(prompt, self.config),
            },
            timeout=self.config.ANALYSIS_TIMEOUT,
        )
        resp.raise_for_status()

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AnalysisParseError(f"Unexpected provider response envelope: {e}") from e
        if not isinstance(content, str):
            raise AnalysisParseError(
                f"Provider message content is {type(content).__name__}, expected text"
            )
        return content

    @staticmethod
    def _stamp(record: InsightRecord) -> InsightRecord:
        record.generated_at = utcnow()
        return record
