"""
Daily Forecast Aggregator
=========================
Reduces raw provider time slots (typically 3-hour steps) into one
ForecastDay per calendar day in the caller's time zone.

Rules:
  • Samples missing a required numeric field are dropped one by one.
  • Days are bucketed in the caller's zone, never by UTC date.
  • At most ``max_days`` earliest days are kept.
  • pressure / temperature / humidity are daily means.
  • condition is the most frequent label; ties go to the label seen first
    in input order.
  • precipitation_probability is the day's max pop as an int percent.
  • pressure_change is measured against the previous *output* day.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Iterable, List, Union

import pandas as pd

from constants import DEFAULT_MAX_FORECAST_DAYS
from models import ForecastDay, RawWeatherSample
from num_utils import clamp, finite_float, round_half_up

log = logging.getLogger("daily_aggregator")

TimeZoneLike = Union[str, tzinfo]


def _probability(value) -> float:
    return finite_float(value) or 0.0


def _samples_frame(samples: List[RawWeatherSample]) -> pd.DataFrame:
    return pd.DataFrame({
        "timestamp": pd.to_datetime([s.timestamp_utc for s in samples], utc=True),
        "pressure": [float(s.pressure) for s in samples],
        "temperature": [float(s.temperature) for s in samples],
        "humidity": [float(s.humidity) for s in samples],
        "condition": [s.condition_label or "Unknown" for s in samples],
        "pop": [_probability(s.precipitation_probability) for s in samples],
    })


def _dominant_condition(labels: pd.Series) -> str:
    """Mode of the labels; the first-seen label wins a tie."""
    counts = labels.value_counts()
    best = counts.max()
    for label in labels:
        if counts[label] == best:
            return label
    return "Unknown"


def aggregate(
    samples: Iterable[RawWeatherSample],
    time_zone: TimeZoneLike = "UTC",
    max_days: int = DEFAULT_MAX_FORECAST_DAYS,
) -> List[ForecastDay]:
    """Aggregate raw samples into at most ``max_days`` daily summaries."""
    samples = list(samples or [])
    valid = [s for s in samples if s.is_valid()]
    dropped = len(samples) - len(valid)
    if dropped:
        log.debug("Dropped %d malformed forecast samples", dropped)
    if not valid or max_days <= 0:
        return []

    df = _samples_frame(valid)
    df["day"] = df["timestamp"].dt.tz_convert(time_zone).dt.date

    days = sorted(df["day"].unique())[:max_days]
    out: List[ForecastDay] = []
    for day in days:
        group = df[df["day"] == day]
        pressure = float(group["pressure"].mean())
        change = 0.0 if not out else pressure - out[-1].pressure
        out.append(ForecastDay(
            date=day,
            pressure=pressure,
            pressure_change=change,
            temperature=float(group["temperature"].mean()),
            humidity=float(group["humidity"].mean()),
            condition=_dominant_condition(group["condition"]),
            precipitation_probability=clamp(round_half_up(group["pop"].max() * 100), 0, 100),
        ))

    log.debug("Aggregated %d samples into %d forecast days", len(valid), len(out))
    return out
