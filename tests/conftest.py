"""
Shared fixtures. Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json

import pytest
import requests

from config.settings import Settings
from db.store import InsightStore
from models.schemas import Competitor, Source


# ─── Helpers ─────────────────────────────────────────────────────────────────

def make_response(status=200, body=None, headers=None, reason=None, text=None):
    """A real requests.Response with a canned status/body."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason or ("OK" if status < 300 else "Error")
    if text is not None:
        resp._content = text.encode("utf-8")
    else:
        resp._content = json.dumps(body if body is not None else {}).encode("utf-8")
    resp.headers.update(headers or {})
    resp.url = "https://example.test/"
    return resp


class FakeClient:
    """
    Scripted SourceClient stand-in.

    `script` maps competitor name -> list of results consumed per call; a
    result that is an Exception instance is raised, anything else returned.
    The last entry repeats once the list is exhausted.
    """

    def __init__(self, source, script=None, default=None):
        self.source = source
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.default = default if default is not None else {"ok": source.value}
        self.calls = []

    def fetch(self, competitor):
        self.calls.append(competitor.name)
        results = self.script.get(competitor.name)
        if not results:
            outcome = self.default
        elif len(results) > 1:
            outcome = results.pop(0)
        else:
            outcome = results[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self, on_sleep=None):
        self.calls = []
        self.on_sleep = on_sleep

    def __call__(self, seconds):
        self.calls.append(seconds)
        if self.on_sleep:
            self.on_sleep(seconds)


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def config(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'insights.db'}",
        NEWS_API_KEY="news-key",
        SOCIAL_BEARER_TOKEN="social-token",
        ANALYSIS_API_KEY=None,
    )


@pytest.fixture
def roster(config):
    return config.roster()


@pytest.fixture
def store(config):
    return InsightStore.from_settings(config)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def ok_clients():
    return {
        Source.QUOTE: FakeClient(Source.QUOTE),
        Source.NEWS: FakeClient(Source.NEWS),
        Source.SOCIAL: FakeClient(Source.SOCIAL),
    }


@pytest.fixture
def three_competitors():
    return [
        Competitor(name="Apple", handle="apple", symbol="AAPL"),
        Competitor(name="Google", handle="google", symbol="GOOGL"),
        Competitor(name="Microsoft", handle="microsoft", symbol="MSFT"),
    ]
