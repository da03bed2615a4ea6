"""
Pain Correlation Engine
=======================
Computes a Pearson coefficient between recorded pain level and each of
six contextual factors, labels each with a canned directional phrase and
ranks them by magnitude.

Rules baked in:
  • Fewer than 3 observations overall  →  no results at all.
  • Per factor, only observations carrying that factor are paired;
    fewer than 3 pairs  →  factor skipped.
  • Zero variance in either series  →  r = 0 (never a division error).
  • Direction phrase: r < −0.3 negative, r > 0.3 positive, else neutral.
  • Strength bands (0.2 / 0.4 / 0.7) are independent of the 0.3
    direction threshold.
  • Ranking: descending |r|, ties keep factor declaration order.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from constants import DIRECTION_THRESHOLD, MIN_SAMPLE_SIZE
from models import CorrelationFactor, CorrelationResult, PainObservation

log = logging.getLogger("correlation_engine")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

# (negative-direction, positive-direction, neutral) phrase per factor
FACTOR_DESCRIPTIONS: Dict[CorrelationFactor, Tuple[str, str, str]] = {
    CorrelationFactor.PRESSURE: (
        "Pain increases at low pressure",
        "Pain increases at high pressure",
        "Weak correlation with pressure",
    ),
    CorrelationFactor.TEMPERATURE: (
        "Pain increases at low temperature",
        "Pain increases at high temperature",
        "Weak correlation with temperature",
    ),
    CorrelationFactor.HUMIDITY: (
        "Pain increases at low humidity",
        "Pain increases at high humidity",
        "Weak correlation with humidity",
    ),
    CorrelationFactor.SLEEP_DURATION: (
        "Pain increases with less sleep",
        "Pain increases with longer sleep",
        "Weak correlation with sleep",
    ),
    CorrelationFactor.STEP_COUNT: (
        "More activity reduces pain",
        "More activity increases pain",
        "Weak correlation with activity",
    ),
    CorrelationFactor.HEART_RATE: (
        "Pain increases at low heart rate",
        "Pain increases at high heart rate",
        "Weak correlation with heart rate",
    ),
}


# ═══════════════════════════════════════════════════════════════
#  MATH
# ═══════════════════════════════════════════════════════════════

def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson r from raw sums.

    r = (nΣxy − ΣxΣy) / √((nΣx² − (Σx)²)(nΣy² − (Σy)²))

    Returns 0.0 for mismatched or too-short input, for non-finite values
    and for a zero denominator.  The result is clipped to [−1, 1] to absorb
    float drift.
    """
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    if x.shape != y.shape or x.size < 2:
        return 0.0
    if not (np.isfinite(x).all() and np.isfinite(y).all()):
        return 0.0
    # Constant series: the raw-sum denominator can come out as float noise
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0

    n = float(x.size)
    numerator = n * np.sum(x * y) - np.sum(x) * np.sum(y)
    denominator_sq = (n * np.sum(x * x) - np.sum(x) ** 2) * (n * np.sum(y * y) - np.sum(y) ** 2)
    if denominator_sq <= 0:
        return 0.0

    r = float(numerator / np.sqrt(denominator_sq))
    if not np.isfinite(r):
        return 0.0
    return float(np.clip(r, -1.0, 1.0))


def describe(factor: CorrelationFactor, coefficient: float) -> str:
    negative, positive, neutral = FACTOR_DESCRIPTIONS[factor]
    if coefficient < -DIRECTION_THRESHOLD:
        return negative
    if coefficient > DIRECTION_THRESHOLD:
        return positive
    return neutral


def paired_sample(
    observations: Sequence[PainObservation], factor: CorrelationFactor
) -> Tuple[List[float], List[float]]:
    """Pain levels and factor values for observations that carry the factor."""
    pain: List[float] = []
    values: List[float] = []
    for obs in observations:
        value = obs.factor_value(factor)
        if value is None:
            continue
        pain.append(float(obs.pain_level))
        values.append(value)
    return pain, values


# ═══════════════════════════════════════════════════════════════
#  ENGINE
# ═══════════════════════════════════════════════════════════════

class CorrelationEngine:
    """Correlates pain level against every factor.  Stateless between runs."""

    def __init__(self, min_sample_size: int = MIN_SAMPLE_SIZE):
        self.min_sample_size = min_sample_size

    def analyze(self, observations: Sequence[PainObservation]) -> List[CorrelationResult]:
        observations = list(observations or [])
        if len(observations) < self.min_sample_size:
            log.debug(
                "Not enough observations for correlation analysis (%d < %d)",
                len(observations), self.min_sample_size,
            )
            return []

        results: List[CorrelationResult] = []
        for factor in CorrelationFactor:
            result = self._correlate_factor(observations, factor)
            if result is not None:
                results.append(result)

        # sorted() is stable, so equal |r| keeps declaration order
        ranked = sorted(results, key=lambda r: abs(r.coefficient), reverse=True)
        log.debug(
            "Correlation run: %d observations, %d factors ranked",
            len(observations), len(ranked),
        )
        return ranked

    def _correlate_factor(
        self, observations: Sequence[PainObservation], factor: CorrelationFactor
    ) -> Optional[CorrelationResult]:
        pain, values = paired_sample(observations, factor)
        if len(pain) < self.min_sample_size:
            return None
        coefficient = pearson(pain, values)
        return CorrelationResult(
            factor=factor,
            coefficient=coefficient,
            sample_size=len(pain),
            description=describe(factor, coefficient),
        )


def analyze(observations: Sequence[PainObservation]) -> List[CorrelationResult]:
    """Module-level convenience wrapper around a default CorrelationEngine."""
    return CorrelationEngine().analyze(observations)
