from .base import Agent, AgentResult, InsightRun, Orchestrator
from .sources import SourceClient, StockQuoteClient, NewsClient, SocialClient
from .collector import CollectionAgent
from .analyst import InsightAgent

__all__ = [
    "Agent", "AgentResult", "InsightRun", "Orchestrator",
    "SourceClient", "StockQuoteClient", "NewsClient", "SocialClient",
    "CollectionAgent", "InsightAgent",
]
