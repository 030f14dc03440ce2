"""
Canned sample payloads.

Used for the social source when the real call cannot be completed, and for
every source in demo mode. Shapes mirror the real providers so downstream
code and prompts treat them the same way.
"""

from datetime import timedelta
from typing import Any, Dict

from models.schemas import Competitor, Source, utcnow


def sample_social_payload(competitor: Competitor) -> Dict[str, Any]:
    now = utcnow()
    return {
        "data": [
            {
                "text": f"{competitor.name} announces new product innovation",
                "created_at": now.isoformat(),
                "public_metrics": {"retweet_count": 150, "like_count": 500},
            },
            {
                "text": f"{competitor.name} reports strong quarterly earnings",
                "created_at": (now - timedelta(days=1)).isoformat(),
                "public_metrics": {"retweet_count": 200, "like_count": 800},
            },
        ]
    }


def sample_quote_payload(competitor: Competitor) -> Dict[str, Any]:
    # deterministic per ticker so demo runs are reproducible
    price = 50.0 + (sum(ord(c) for c in competitor.symbol) % 200)
    return {
        "chart": {
            "result": [
                {"meta": {"symbol": competitor.symbol, "regularMarketPrice": round(price, 2)}}
            ]
        }
    }


def sample_news_payload(competitor: Competitor) -> Dict[str, Any]:
    return {
        "articles": [
            {
                "title": f"{competitor.name} leads market innovation",
                "description": f"{competitor.name} continues to drive technological advancement",
                "publishedAt": utcnow().isoformat(),
            }
        ]
    }


_SAMPLES = {
    Source.SOCIAL: sample_social_payload,
    Source.QUOTE: sample_quote_payload,
    Source.NEWS: sample_news_payload,
}


def sample_payload(source: Source, competitor: Competitor) -> Dict[str, Any]:
    return _SAMPLES[source](competitor)
