"""
Collection Agent
-----------------
Walks the competitor roster and collects one observation per
(competitor, source) pair, in a fixed order:

  competitor 1: quote → news → social
  (inter-competitor delay)
  competitor 2: quote → news → social
  ...

Failure handling per pair:
  - missing credential          → skipped, recorded
  - rate limited                → retried with linear backoff (5s, 10s)
  - any other error             → failed at once, recorded
  - social source unusable      → replaced by a degraded sample observation

No pair failure aborts the run. Only an empty or malformed roster raises.

Input:  Sequence[Competitor]
Output: ObservationSet
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from agents.base import Agent
from agents.samples import sample_payload
from agents.sources import SourceClient, build_clients
from config.settings import Settings
from models.errors import ConfigurationMissing
from models.schemas import (
    CollectionFailure,
    Competitor,
    Observation,
    ObservationSet,
    PairOutcome,
    Source,
    SOURCE_ORDER,
)
from utils.retry import RetryError, RetryPolicy

logger = logging.getLogger(__name__)

MIN_INTER_COMPETITOR_DELAY = 2.0

# Sources allowed a canned stand-in when the real call fails.
SUBSTITUTE_SOURCES = frozenset({Source.SOCIAL})


def validate_roster(competitors: Sequence[Competitor]) -> List[Competitor]:
    if competitors is None or isinstance(competitors, (str, bytes)):
        raise ValueError("Competitor roster must be a sequence of Competitor records")
    roster = list(competitors)
    if not roster:
        raise ValueError("Competitor roster is empty")
    for c in roster:
        if not isinstance(c, Competitor) or not c.name:
            raise ValueError(f"Malformed competitor entry: {c!r}")
    return roster


class CollectionAgent(Agent):
    """
    Agent 1: Multi-source collector

    Input:  Sequence[Competitor]
    Output: ObservationSet (observations + recorded failures)
    """

    def __init__(
        self,
        config: Settings,
        clients: Optional[Dict[Source, SourceClient]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: Optional[threading.Event] = None,
        demo: bool = False,
    ):
        super().__init__(name="CollectionAgent")
        self.config = config
        self.clients = clients if clients is not None else build_clients(config)
        self.cancel_event = cancel_event
        self.clock = clock
        self.demo = demo

        # None means "wait on the run's cancel event", resolved per collect()
        self.sleep = sleep
        self.delay = max(config.INTER_COMPETITOR_DELAY, MIN_INTER_COMPETITOR_DELAY)

    def run(self, competitors: Sequence[Competitor]) -> ObservationSet:
        return self.collect(competitors, cancel_event=self.cancel_event)

    # ── Public API ───────────────────────────────────────────────────────────

    def collect(
        self,
        competitors: Sequence[Competitor],
        cancel_event: Optional[threading.Event] = None,
    ) -> ObservationSet:
        roster = validate_roster(competitors)
        cancel_event = cancel_event or self.cancel_event
        sleep = self._sleeper(cancel_event)
        policies = self._policies(sleep)
        deadline = None
        if self.config.RUN_TIMEOUT_SECONDS:
            deadline = self.clock() + self.config.RUN_TIMEOUT_SECONDS

        result = ObservationSet()
        self.logger.info(
            f"📊 Collecting {len(SOURCE_ORDER)} sources for {len(roster)} competitors"
            + (" (demo mode)" if self.demo else "")
        )

        for index, competitor in enumerate(roster):
            if self._should_stop(cancel_event, deadline):
                result.cancelled = True
                self.logger.warning(
                    f"⏹️ Collection stopped before {competitor.name}; "
                    f"keeping {len(result)} observations collected so far"
                )
                break

            self.logger.info(f"  📱 [{index + 1}/{len(roster)}] {competitor.name}")
            for source in SOURCE_ORDER:
                outcome = self._collect_pair(competitor, source, policies[source])
                self._fold(result, outcome, competitor)

            if index < len(roster) - 1 and not self.demo:
                sleep(self.delay)

        self.logger.info(
            f"Collected {len(result)} observations "
            f"({len(result.degraded())} degraded, {len(result.failures)} failures)"
        )
        return result

    # ── Internals ────────────────────────────────────────────────────────────

    def _sleeper(self, cancel_event: Optional[threading.Event]) -> Callable[[float], None]:
        if self.sleep is not None:
            return self.sleep
        return cancel_event.wait if cancel_event is not None else time.sleep

    def _policies(self, sleep: Callable[[float], None]) -> Dict[Source, RetryPolicy]:
        return {
            source: RetryPolicy(
                max_attempts=self.config.RATE_LIMIT_MAX_ATTEMPTS,
                backoff_seconds=self.config.RATE_LIMIT_BACKOFF_SECONDS,
                sleep=sleep,
            )
            for source in SOURCE_ORDER
        }

    def _should_stop(self, cancel_event: Optional[threading.Event], deadline: Optional[float]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and self.clock() >= deadline

    def _collect_pair(self, competitor: Competitor, source: Source, policy: RetryPolicy) -> PairOutcome:
        """Resolve one (competitor, source) pair completely. Never raises."""
        if self.demo:
            return PairOutcome(
                competitor=competitor.name,
                source=source,
                observation=Observation(
                    competitor=competitor.name,
                    source=source,
                    payload=sample_payload(source, competitor),
                    degraded=True,
                    note="demo sample",
                ),
            )

        client = self.clients.get(source)
        if client is None:
            return PairOutcome(
                competitor=competitor.name,
                source=source,
                error=ConfigurationMissing(source.value, "client"),
            )

        attempts = 0

        def attempt():
            nonlocal attempts
            attempts += 1
            return client.fetch(competitor)

        try:
            payload = policy.call(attempt, label=f"{source.value}/{competitor.name}")
        except Exception as e:
            return PairOutcome(competitor=competitor.name, source=source, error=e, attempts=attempts)

        return PairOutcome(
            competitor=competitor.name,
            source=source,
            observation=Observation(competitor=competitor.name, source=source, payload=payload),
            attempts=attempts,
        )

    def _fold(self, result: ObservationSet, outcome: PairOutcome, competitor: Competitor) -> None:
        if outcome.ok:
            result.observations.append(outcome.observation)
            if not outcome.observation.degraded:
                self.logger.info(f"    ✅ {outcome.source.value} collected")
            return

        error = outcome.error
        cause = error.last_exception if isinstance(error, RetryError) and error.last_exception else error
        result.failures.append(
            CollectionFailure(
                competitor=outcome.competitor,
                source=outcome.source,
                error_type=type(cause).__name__,
                message=str(error),
                attempts=outcome.attempts,
            )
        )

        if isinstance(error, ConfigurationMissing):
            self.logger.info(f"    ⏭️ {outcome.source.value} skipped: {error}")
        else:
            self.logger.warning(f"    ⚠️ {outcome.source.value} failed for {competitor.name}: {error}")

        if outcome.source in SUBSTITUTE_SOURCES:
            result.observations.append(
                Observation(
                    competitor=competitor.name,
                    source=outcome.source,
                    payload=sample_payload(outcome.source, competitor),
                    degraded=True,
                    note=f"sample data: {type(cause).__name__}",
                )
            )
            self.logger.info(f"    🧪 {outcome.source.value} replaced with sample data")
