"""
Configuration & Settings
TrendSage Market Insights
"""

from pydantic import BaseModel
from typing import Dict, List, Mapping, Optional, Tuple
import logging
import os

from models.schemas import Competitor


DEFAULT_COMPETITORS: List[Dict[str, str]] = [
    {"name": "Apple", "handle": "apple", "symbol": "AAPL", "website": "https://apple.com"},
    {"name": "Google", "handle": "google", "symbol": "GOOGL", "website": "https://google.com"},
    {"name": "Microsoft", "handle": "microsoft", "symbol": "MSFT", "website": "https://microsoft.com"},
]


class Settings(BaseModel):
    # App
    APP_NAME: str = "TrendSage Market Insights"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./trendsage.db"

    # Competitor roster (static, read-only once loaded)
    COMPETITORS: List[Dict[str, str]] = DEFAULT_COMPETITORS

    # Source credentials. Absent means "source not configured".
    NEWS_API_KEY: Optional[str] = None
    SOCIAL_BEARER_TOKEN: Optional[str] = None

    # Collection
    REQUEST_TIMEOUT: float = 10.0
    INTER_COMPETITOR_DELAY: float = 2.0
    RATE_LIMIT_MAX_ATTEMPTS: int = 3
    RATE_LIMIT_BACKOFF_SECONDS: float = 5.0
    RUN_TIMEOUT_SECONDS: Optional[float] = None
    NEWS_PAGE_SIZE: int = 5
    SOCIAL_MAX_RESULTS: int = 10
    USER_AGENT: str = "TrendSage/1.0 (+market-insights pipeline)"

    # Analysis provider (OpenAI-compatible chat completions)
    ANALYSIS_API_KEY: Optional[str] = None
    ANALYSIS_API_URL: str = "https://api.openai.com/v1/chat/completions"
    ANALYSIS_MODEL: str = "gpt-3.5-turbo"
    ANALYSIS_TEMPERATURE: float = 0.7
    ANALYSIS_TIMEOUT: float = 30.0
    # max_tokens = min(MAX, BASE + len(prompt) // 20)
    ANALYSIS_BASE_TOKENS: int = 800
    ANALYSIS_MAX_TOKENS: int = 2000
    SENTIMENT_CLAMP_TOLERANCE: float = 0.25

    # Output
    EXPORT_DIR: Optional[str] = None

    # Scheduler
    SCHEDULE_HOUR: int = 9
    SCHEDULE_MINUTE: int = 0
    SCHEDULE_TIMEZONE: str = "America/New_York"
    SCHEDULE_RUN_ON_START: bool = False

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    def roster(self) -> Tuple[Competitor, ...]:
        """The competitor roster as immutable records."""
        return tuple(
            Competitor(
                name=c["name"],
                handle=c.get("handle", c["name"].lower()),
                symbol=c.get("symbol", ""),
                website=c.get("website", ""),
            )
            for c in self.COMPETITORS
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables named like the fields.

        Empty strings count as unset. Values that fail to coerce raise
        ValueError naming the variable.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, object] = {}

        for name, field in cls.model_fields.items():
            if name == "COMPETITORS":
                continue
            raw = env.get(name, "").strip()
            if not raw:
                continue
            annotation = field.annotation
            if annotation in (bool, Optional[bool]):
                values[name] = raw.lower() in ("1", "true", "yes", "on")
            elif annotation in (int, Optional[int]):
                try:
                    values[name] = int(raw)
                except ValueError as e:
                    raise ValueError(f"Invalid {name}: {raw}") from e
            elif annotation in (float, Optional[float]):
                try:
                    values[name] = float(raw)
                except ValueError as e:
                    raise ValueError(f"Invalid {name}: {raw}") from e
            else:
                values[name] = raw

        return cls(**values)


def configure_logging(config: Settings) -> None:
    """Root logging for every entry point (CLI, scheduler, API)."""
    logging.basicConfig(
        level=logging.DEBUG if config.DEBUG else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
