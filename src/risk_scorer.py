"""
Forecast Risk Scorer
====================
Turns a daily forecast summary plus recent pain history into a bounded
0-100 risk score and a risk level.

  base        = round(|Δpressure| × 8)
  historical  = round(recent_pain_average / 10 × 20)
  risk        = clamp(base + historical, 0, 100)     (single final clamp)
  level       = HIGH if |Δ| ≥ 10, MEDIUM if |Δ| ≥ 5, else LOW

The level is banded on the raw pressure delta, not on the score.  The
four-tier display scale (with VERY_HIGH) used for day cards is a separate
function and is never used by ``score``.
"""

from __future__ import annotations

import math
import sys
from typing import Optional, Sequence

from constants import (
    DAY_STRIP_RISK_OFFSET,
    DISPLAY_RISK_EDGES,
    FALLBACK_RISK_PERCENT,
    HIGH_RISK_PRESSURE_DELTA,
    HISTORICAL_RISK_MULTIPLIER,
    MEDIUM_RISK_PRESSURE_DELTA,
    PRESSURE_RISK_MULTIPLIER,
    PRESSURE_TREND_DELTA,
    RECENT_PAIN_WINDOW,
    RICHNESS_PER_OBSERVATION,
)
from models import ForecastDay, PainObservation, RiskAssessment, RiskLevel
from num_utils import clamp, finite_float, round_half_up


def _rounded(value: float) -> int:
    """round_half_up that saturates an overflowed product instead of raising."""
    if math.isinf(value):
        return sys.maxsize if value > 0 else -sys.maxsize
    return round_half_up(value)


def pressure_risk(pressure_change: float) -> int:
    """Unclamped pressure-volatility component."""
    return _rounded(abs(pressure_change) * PRESSURE_RISK_MULTIPLIER)


def risk_level(pressure_change: float) -> RiskLevel:
    delta = abs(pressure_change)
    if delta >= HIGH_RISK_PRESSURE_DELTA:
        return RiskLevel.HIGH
    if delta >= MEDIUM_RISK_PRESSURE_DELTA:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _pressure_delta(forecast_day: ForecastDay) -> Optional[float]:
    return finite_float(forecast_day.pressure_change)


def score(forecast_day: Optional[ForecastDay], recent_pain_average: float) -> RiskAssessment:
    """Risk for one forecast day.

    A missing day, or one whose pressure change is not a finite number,
    yields the fallback (20, LOW).  A non-finite average counts as 0.
    """
    delta = None if forecast_day is None else _pressure_delta(forecast_day)
    if delta is None:
        return RiskAssessment(FALLBACK_RISK_PERCENT, RiskLevel.LOW)

    historical_factor = (finite_float(recent_pain_average) or 0.0) / 10.0
    raw = pressure_risk(delta) + _rounded(historical_factor * HISTORICAL_RISK_MULTIPLIER)
    return RiskAssessment(clamp(raw, 0, 100), risk_level(delta))


def recent_pain_average(
    observations: Sequence[PainObservation], window: int = RECENT_PAIN_WINDOW
) -> float:
    """Mean pain level of the ``window`` most recent observations (0.0 if none)."""
    recent = sorted(observations or [], key=lambda o: o.timestamp, reverse=True)[:window]
    if not recent:
        return 0.0
    return sum(o.pain_level for o in recent) / len(recent)


# ─── Display-side helpers ────────────────────────────────────

def day_risk_percent(forecast_day: ForecastDay) -> int:
    """Day-strip percentage: pressure component plus a flat offset."""
    delta = _pressure_delta(forecast_day)
    base = 0 if delta is None else pressure_risk(delta)
    return clamp(base + DAY_STRIP_RISK_OFFSET, 0, 100)


def display_risk_level(risk_percent: int) -> RiskLevel:
    """Four-tier display scale on a risk percentage."""
    low_edge, medium_edge, high_edge = DISPLAY_RISK_EDGES
    if risk_percent <= low_edge:
        return RiskLevel.LOW
    if risk_percent <= medium_edge:
        return RiskLevel.MEDIUM
    if risk_percent <= high_edge:
        return RiskLevel.HIGH
    return RiskLevel.VERY_HIGH


def pressure_trend(forecast_day: ForecastDay) -> str:
    delta = _pressure_delta(forecast_day)
    if delta is None:
        return "stable"
    if delta < -PRESSURE_TREND_DELTA:
        return "falling"
    if delta > PRESSURE_TREND_DELTA:
        return "rising"
    return "stable"


def data_richness(observation_count: int) -> int:
    """0-100 score of how much history backs a prediction."""
    return clamp(observation_count * RICHNESS_PER_OBSERVATION, 0, 100)
