"""
Analysis service: snapshot → background compute → atomic publish.

The caller's observation collection is copied into an immutable tuple
before the worker sees it; the worker runs pure functions only; the
result replaces the published state in a single assignment.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

import insight_generator
from correlation_engine import CorrelationEngine
from models import CorrelationResult, Insight, PainObservation

log = logging.getLogger("analysis_service")


@dataclass(frozen=True)
class AnalysisState:
    correlations: Tuple[CorrelationResult, ...] = ()
    insights: Tuple[Insight, ...] = ()
    analyzed_at: Optional[datetime] = None
    observation_count: int = 0

    @property
    def has_results(self) -> bool:
        return bool(self.correlations)

    def to_dict(self):
        return {
            "correlations": [c.to_dict() for c in self.correlations],
            "insights": [i.to_dict() for i in self.insights],
            "analyzed_at": self.analyzed_at.isoformat() if self.analyzed_at else None,
            "observation_count": self.observation_count,
            "analysis_status": "success" if self.correlations else "insufficient_data",
        }


def compute_analysis(
    snapshot: Tuple[PainObservation, ...],
    engine: Optional[CorrelationEngine] = None,
) -> Tuple[Tuple[CorrelationResult, ...], Tuple[Insight, ...]]:
    """Pure compute step; touches nothing but its arguments."""
    engine = engine or CorrelationEngine()
    correlations = engine.analyze(snapshot)
    insights = insight_generator.generate(snapshot, correlations)
    return tuple(correlations), tuple(insights)


class AnalysisService:
    """Runs correlation + insight analysis off the calling thread.

    At most one analysis runs at a time; a second caller blocks until the
    first publishes (no cancellation).
    """

    def __init__(
        self,
        engine: Optional[CorrelationEngine] = None,
        executor: Optional[Executor] = None,
    ):
        self.engine = engine or CorrelationEngine()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pain-analysis"
        )
        self._run_lock = threading.Lock()
        self._state = AnalysisState()
        self.is_analyzing = False

    @property
    def state(self) -> AnalysisState:
        return self._state

    def analyze(self, observations: Iterable[PainObservation]) -> AnalysisState:
        snapshot = tuple(observations or ())
        with self._run_lock:
            self.is_analyzing = True
            try:
                future = self._executor.submit(compute_analysis, snapshot, self.engine)
                correlations, insights = future.result()
                state = AnalysisState(
                    correlations=correlations,
                    insights=insights,
                    analyzed_at=datetime.now(timezone.utc),
                    observation_count=len(snapshot),
                )
                self._state = state
            finally:
                self.is_analyzing = False

        log.info(
            "Analysis complete: %d observations, %d correlations, %d insights",
            len(snapshot), len(state.correlations), len(state.insights),
        )
        return state

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
