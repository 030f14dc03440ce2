"""
Agent base class and the collect → analyze orchestrator
TrendSage Market Insights
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime
import logging
import traceback

from models.schemas import Competitor, InsightRecord, ObservationSet, utcnow

logger = logging.getLogger(__name__)


@dataclass
class AgentResult:
    """Outcome of one agent step: its output, or the exception it raised."""
    agent_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def __repr__(self):
        status = "✅" if self.success else "❌"
        dur = f" ({self.duration_seconds:.1f}s)" if self.duration_seconds is not None else ""
        return f"{status} {self.agent_name}{dur}"


class Agent(ABC):
    """
    One pipeline step. Subclasses implement `run(data)`; `execute` wraps it
    so a failure comes back as an AgentResult instead of propagating.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")

    @abstractmethod
    def run(self, data: Any) -> Any:
        raise NotImplementedError

    def execute(self, data: Any) -> AgentResult:
        started_at = utcnow()
        try:
            output = self.run(data)
        except Exception as e:
            self.logger.error(f"[{self.name}] Failed: {e}\n{traceback.format_exc()}")
            return AgentResult(
                agent_name=self.name,
                success=False,
                error=str(e),
                exception=e,
                started_at=started_at,
                finished_at=utcnow(),
            )

        result = AgentResult(
            agent_name=self.name,
            success=True,
            data=output,
            started_at=started_at,
            finished_at=utcnow(),
        )
        self.logger.info(f"[{self.name}] Completed in {result.duration_seconds:.2f}s")
        return result

    def __repr__(self):
        return f"<Agent: {self.name}>"


@dataclass
class InsightRun:
    """Everything one orchestrated pass produced."""
    observations: ObservationSet
    record: InsightRecord
    steps: List[AgentResult] = field(default_factory=list)

    def summary(self) -> str:
        lines = ["Pipeline Summary:"]
        lines.extend(f"  {step}" for step in self.steps)
        lines.append(
            f"  {len(self.observations)} observations, "
            f"{len(self.observations.failures)} failures, "
            f"insight source: {self.record.source.value}"
        )
        return "\n".join(lines)


class Orchestrator:
    """
    Runs the collector over the roster, then hands its ObservationSet to
    the analyst. Stops at the first failed step and re-raises its error:
    ValueError (bad roster) as-is, anything else wrapped in RuntimeError.
    """

    def __init__(self, collector: Agent, analyst: Agent):
        self.collector = collector
        self.analyst = analyst
        self.logger = logging.getLogger("orchestrator")

    def execute(self, roster: Sequence[Competitor]) -> InsightRun:
        self.logger.info(f"🚀 Orchestrator starting: {self.collector.name} → {self.analyst.name}")
        steps: List[AgentResult] = []

        collected = self.collector.execute(roster)
        steps.append(collected)
        self._raise_if_failed(collected)

        analysed = self.analyst.execute(collected.data)
        steps.append(analysed)
        self._raise_if_failed(analysed)

        return InsightRun(observations=collected.data, record=analysed.data, steps=steps)

    def _raise_if_failed(self, result: AgentResult) -> None:
        if result.success:
            return
        self.logger.error(f"  ❌ '{result.agent_name}' failed: {result.error}")
        if isinstance(result.exception, ValueError):
            raise result.exception
        raise RuntimeError(f"{result.agent_name} failed: {result.error}") from result.exception
