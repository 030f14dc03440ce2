"""
Insight agent tests: fallback paths, response parsing and validation.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from agents.analyst import (
    FALLBACK_OVERALL_SENTIMENT,
    InsightAgent,
    build_prompt,
    coerce_sentiment,
    normalize_insight_payload,
    parse_json_text,
    token_budget,
)
from models.errors import AnalysisParseError
from models.schemas import InsightSource, Observation, ObservationSet, Source
from tests.conftest import make_response


VALID_ANSWER = {
    "overall_sentiment": 0.4,
    "key_insights": ["Apple momentum strong"],
    "competitor_analysis": {
        "Apple": {"sentiment": 0.8, "trend": "positive"},
        "Google": {"sentiment": 0.1, "trend": "Stable"},
        "Microsoft": {"sentiment": 0.5, "trend": "growing"},
    },
    "recommendations": ["Watch Apple launches"],
    "data_sources_used": ["quote", "news"],
}


def _observations():
    return ObservationSet(observations=[
        Observation(competitor="Apple", source=Source.QUOTE, payload={"price": 1}),
        Observation(competitor="Apple", source=Source.SOCIAL, payload={"data": []}, degraded=True),
        Observation(competitor="Google", source=Source.NEWS, payload={"articles": []}),
        Observation(competitor="Microsoft", source=Source.QUOTE, payload={"price": 2}),
    ])


def _chat_response(content, status=200):
    return make_response(status, {"choices": [{"message": {"role": "assistant", "content": content}}]})


def _agent(config, response=None, side_effect=None):
    session = MagicMock(spec=requests.Session)
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = response
    keyed = config.model_copy(update={"ANALYSIS_API_KEY": "sk-test"})
    return InsightAgent(keyed, session=session), session


# ─── Fallback paths ──────────────────────────────────────────────────────────

class TestFallback:
    def test_no_credential_skips_network(self, config):
        session = MagicMock(spec=requests.Session)
        record = InsightAgent(config, session=session).analyze(_observations())

        session.post.assert_not_called()
        assert record.source == InsightSource.FALLBACK
        assert record.overall_sentiment == FALLBACK_OVERALL_SENTIMENT
        assert set(record.competitor_analysis) == {"Apple", "Google", "Microsoft"}
        for ci in record.competitor_analysis.values():
            assert (ci.sentiment, ci.trend) == (0.0, "stable")
        assert record.data_sources_used == ["news", "quote"]
        assert record.generated_at is not None

    def test_not_json_falls_back(self, config):
        agent, _ = _agent(config, _chat_response("not json"))
        record = agent.analyze(_observations())
        assert record.source == InsightSource.FALLBACK
        assert record.overall_sentiment == FALLBACK_OVERALL_SENTIMENT

    def test_http_error_falls_back(self, config):
        agent, _ = _agent(config, make_response(500, {"error": "overloaded"}))
        assert agent.analyze(_observations()).source == InsightSource.FALLBACK

    def test_transport_error_falls_back(self, config):
        agent, _ = _agent(config, side_effect=requests.ConnectionError("refused"))
        assert agent.analyze(_observations()).source == InsightSource.FALLBACK

    def test_unexpected_envelope_falls_back(self, config):
        agent, _ = _agent(config, make_response(200, {"id": "x", "choices": []}))
        assert agent.analyze(_observations()).source == InsightSource.FALLBACK

    @pytest.mark.parametrize("content", [{"overall_sentiment": 0.3}, ["a"], 42, None])
    def test_non_text_content_falls_back(self, config, content):
        agent, _ = _agent(config, _chat_response(content))
        record = agent.analyze(_observations())
        assert record.source == InsightSource.FALLBACK
        assert record.overall_sentiment == FALLBACK_OVERALL_SENTIMENT

    @pytest.mark.parametrize("sentiment", [None, "very good", 3.0, float("nan"), True])
    def test_bad_overall_sentiment_falls_back(self, config, sentiment):
        answer = dict(VALID_ANSWER, overall_sentiment=sentiment)
        agent, _ = _agent(config, _chat_response(json.dumps(answer)))
        assert agent.analyze(_observations()).source == InsightSource.FALLBACK

    def test_non_array_insights_falls_back(self, config):
        answer = dict(VALID_ANSWER, key_insights="Apple is up")
        agent, _ = _agent(config, _chat_response(json.dumps(answer)))
        assert agent.analyze(_observations()).source == InsightSource.FALLBACK


# ─── Model path ──────────────────────────────────────────────────────────────

class TestModelResponse:
    def test_valid_answer(self, config):
        agent, session = _agent(config, _chat_response(json.dumps(VALID_ANSWER)))
        record = agent.analyze(_observations())

        assert record.source == InsightSource.MODEL
        assert record.overall_sentiment == 0.4
        assert record.competitor_analysis["Google"].trend == "stable"
        assert record.recommendations == ["Watch Apple launches"]

        kwargs = session.post.call_args.kwargs
        assert kwargs["timeout"] == 30.0
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["messages"][0]["role"] == "system"
        assert "Microsoft" in kwargs["json"]["messages"][1]["content"]

    def test_missing_recommendations_become_empty(self, config):
        answer = {k: v for k, v in VALID_ANSWER.items() if k != "recommendations"}
        agent, _ = _agent(config, _chat_response(json.dumps(answer)))
        record = agent.analyze(_observations())

        assert record.source == InsightSource.MODEL
        assert record.recommendations == []

    def test_fenced_json_is_accepted(self, config):
        content = "```json\n" + json.dumps(VALID_ANSWER) + "\n```"
        agent, _ = _agent(config, _chat_response(content))
        assert agent.analyze(_observations()).source == InsightSource.MODEL

    def test_missing_competitor_gets_placeholder(self, config):
        answer = dict(VALID_ANSWER, competitor_analysis={"apple": {"sentiment": 0.9, "trend": "growing"}})
        agent, _ = _agent(config, _chat_response(json.dumps(answer)))
        record = agent.analyze(_observations())

        assert record.competitor_analysis["Apple"].sentiment == 0.9
        assert record.competitor_analysis["Google"].sentiment == 0.0
        assert record.competitor_analysis["Google"].trend == "stable"
        assert record.competitor_analysis["Microsoft"].trend == "stable"

    def test_marginal_overall_sentiment_is_clamped(self, config):
        answer = dict(VALID_ANSWER, overall_sentiment=1.1)
        agent, _ = _agent(config, _chat_response(json.dumps(answer)))
        record = agent.analyze(_observations())
        assert record.source == InsightSource.MODEL
        assert record.overall_sentiment == 1.0

    def test_missing_sources_default_to_observed(self, config):
        answer = {k: v for k, v in VALID_ANSWER.items() if k != "data_sources_used"}
        agent, _ = _agent(config, _chat_response(json.dumps(answer)))
        assert agent.analyze(_observations()).data_sources_used == ["news", "quote"]


# ─── Helpers ─────────────────────────────────────────────────────────────────

class TestParsingHelpers:
    def test_parse_json_text_rejects_empty(self):
        with pytest.raises(AnalysisParseError):
            parse_json_text("   ")

    def test_coerce_numeric_string(self):
        assert coerce_sentiment("-0.25", 0.25, "x") == -0.25

    def test_coerce_rejects_far_out_of_range(self):
        with pytest.raises(AnalysisParseError):
            coerce_sentiment(-1.5, 0.25, "x")

    def test_normalize_rejects_non_object(self):
        with pytest.raises(AnalysisParseError):
            normalize_insight_payload([1, 2], ["Apple"])

    def test_normalize_rejects_non_mapping_analysis(self):
        with pytest.raises(AnalysisParseError):
            normalize_insight_payload({"overall_sentiment": 0, "competitor_analysis": []}, ["Apple"])

    def test_malformed_entry_becomes_placeholder(self):
        record = normalize_insight_payload(
            {"overall_sentiment": 0.2, "competitor_analysis": {"Apple": "great", "Google": 0.3}},
            ["Apple", "Google"],
        )
        assert record.competitor_analysis["Apple"].sentiment == 0.0
        assert record.competitor_analysis["Google"].sentiment == 0.3

    def test_token_budget_scales_and_caps(self, config):
        small = token_budget("x" * 100, config)
        large = token_budget("x" * 100000, config)
        assert small == config.ANALYSIS_BASE_TOKENS + 5
        assert large == config.ANALYSIS_MAX_TOKENS

    def test_prompt_lists_every_observation(self):
        prompt = build_prompt(_observations())
        assert prompt.count('"competitor"') == 4
        assert "overall_sentiment" in prompt
