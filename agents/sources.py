"""
Source Clients
---------------
One client per market-signal source. Each does a single HTTP GET for one
competitor and hands back the provider's JSON untouched.

Supported sources (v1):
  - quote  : Yahoo Finance chart endpoint (no credential)
  - news   : NewsAPI "everything" search (NEWS_API_KEY)
  - social : X/Twitter v2 recent search (SOCIAL_BEARER_TOKEN)

Clients never retry. Retry/backoff belongs to the CollectionAgent.

Architecture:
  SourceClient.fetch(competitor) -> raw JSON payload
"""

import logging
from typing import Any, Dict, Optional

import requests

from config.settings import Settings
from models.errors import (
    ConfigurationMissing,
    PermanentSourceError,
    RateLimitError,
    TransientSourceError,
)
from models.schemas import Competitor, Source

logger = logging.getLogger(__name__)


def _retry_after(resp: requests.Response) -> Optional[float]:
    value = resp.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class SourceClient:
    """Base client: shared session, timeout, and HTTP error classification."""

    source: Source
    credential_setting: Optional[str] = None

    def __init__(self, config: Settings, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.USER_AGENT})

    @property
    def credential(self) -> Optional[str]:
        if not self.credential_setting:
            return None
        return getattr(self.config, self.credential_setting) or None

    @property
    def is_configured(self) -> bool:
        return self.credential_setting is None or bool(self.credential)

    def _require_credential(self) -> str:
        if not self.is_configured:
            raise ConfigurationMissing(self.source.value, self.credential_setting)
        return self.credential

    def _get(self, url: str, **kwargs) -> Any:
        """HTTP GET with a bounded timeout. Maps failures onto the source error types."""
        try:
            resp = self.session.get(url, timeout=self.config.REQUEST_TIMEOUT, **kwargs)
        except requests.Timeout as e:
            raise TransientSourceError(None, f"timeout after {self.config.REQUEST_TIMEOUT}s: {e}") from e
        except requests.RequestException as e:
            raise TransientSourceError(None, str(e)) from e

        status = resp.status_code
        if status == 429:
            raise RateLimitError(retry_after=_retry_after(resp))
        if status >= 500:
            raise TransientSourceError(status, resp.reason or "server error")
        if status >= 300:
            raise PermanentSourceError(status, resp.reason or "request rejected")

        try:
            return resp.json()
        except ValueError as e:
            raise PermanentSourceError(status, f"response is not JSON: {e}") from e

    def fetch(self, competitor: Competitor) -> Any:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} configured={self.is_configured}>"


class StockQuoteClient(SourceClient):
    """Daily chart/quote for the competitor's ticker."""

    source = Source.QUOTE
    URL_TEMPLATE = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"

    def fetch(self, competitor: Competitor) -> Any:
        if not competitor.symbol:
            raise PermanentSourceError(None, f"{competitor.name} has no ticker symbol")
        data = self._get(self.URL_TEMPLATE.format(symbol=competitor.symbol))
        price = _quote_price(data)
        logger.debug(f"Quote {competitor.symbol}: {price if price is not None else 'N/A'}")
        return data


class NewsClient(SourceClient):
    """Most recent articles mentioning the competitor by name."""

    source = Source.NEWS
    credential_setting = "NEWS_API_KEY"
    URL = "https://newsapi.org/v2/everything"

    def fetch(self, competitor: Competitor) -> Any:
        api_key = self._require_credential()
        return self._get(
            self.URL,
            params={
                "q": competitor.name,
                "sortBy": "publishedAt",
                "pageSize": self.config.NEWS_PAGE_SIZE,
                "apiKey": api_key,
            },
        )


class SocialClient(SourceClient):
    """Recent posts authored by the competitor's handle."""

    source = Source.SOCIAL
    credential_setting = "SOCIAL_BEARER_TOKEN"
    URL = "https://api.twitter.com/2/tweets/search/recent"

    def fetch(self, competitor: Competitor) -> Any:
        token = self._require_credential()
        handle = competitor.handle.lstrip("@")
        # provider accepts 10..100
        max_results = min(max(self.config.SOCIAL_MAX_RESULTS, 10), 100)
        return self._get(
            self.URL,
            headers={"Authorization": f"Bearer {token}"},
            params={
                "query": f"from:{handle}",
                "max_results": max_results,
                "tweet.fields": "created_at,public_metrics",
            },
        )


def _quote_price(data: Any) -> Optional[float]:
    try:
        return data["chart"]["result"][0]["meta"]["regularMarketPrice"]
    except (KeyError, IndexError, TypeError):
        return None


def build_clients(config: Settings, session: Optional[requests.Session] = None) -> Dict[Source, SourceClient]:
    """One client per source, keyed by Source."""
    return {
        Source.QUOTE: StockQuoteClient(config, session=session),
        Source.NEWS: NewsClient(config, session=session),
        Source.SOCIAL: SocialClient(config, session=session),
    }
