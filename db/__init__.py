from .database import init_db, get_db, make_engine, make_session_factory
from .models import Base, DailyInsight
from .store import InsightStore

__all__ = [
    "init_db", "get_db", "make_engine", "make_session_factory",
    "Base", "DailyInsight", "InsightStore",
]
