"""
Shared helpers for API routes.
Contains: payload → domain record conversion and JSON coercion.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from models import (
    ForecastDay,
    HealthSnapshot,
    PainObservation,
    RawWeatherSample,
    WeatherSnapshot,
)
from num_utils import finite_float

log = logging.getLogger("api")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = finite_float(value)
        return None if seconds is None else datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def observation_from_payload(payload: Dict[str, Any]) -> Optional[PainObservation]:
    """Build a PainObservation; unknown tags raise ValueError, no timestamp → None."""
    ts = _parse_timestamp(payload.get("timestamp"))
    if ts is None:
        return None
    return PainObservation(
        id=payload.get("id"),
        timestamp=ts,
        pain_level=payload.get("pain_level", 0),
        body_parts=payload.get("body_parts") or [],
        pain_types=payload.get("pain_types") or [],
        note=payload.get("note") or "",
        weather=WeatherSnapshot.from_dict(payload.get("weather")),
        health=HealthSnapshot.from_dict(payload.get("health")),
    )


def observations_from_payload(items: Iterable[Dict[str, Any]]) -> List[PainObservation]:
    out: List[PainObservation] = []
    skipped = 0
    for item in items or []:
        obs = observation_from_payload(item)
        if obs is None:
            skipped += 1
            continue
        out.append(obs)
    if skipped:
        log.info("Skipped %d observations without a valid timestamp", skipped)
    return out


def sample_from_payload(payload: Dict[str, Any]) -> RawWeatherSample:
    return RawWeatherSample(
        timestamp_utc=_parse_timestamp(payload.get("timestamp_utc")),
        pressure=finite_float(payload.get("pressure")),
        temperature=finite_float(payload.get("temperature")),
        humidity=finite_float(payload.get("humidity")),
        condition_label=payload.get("condition_label") or "Unknown",
        precipitation_probability=finite_float(payload.get("precipitation_probability")) or 0.0,
    )


def forecast_day_from_payload(payload: Optional[Dict[str, Any]]) -> Optional[ForecastDay]:
    """Missing, unparseable or non-finite day → None (the scorer then falls back)."""
    if not payload:
        return None
    day = _parse_date(payload.get("date"))
    pressure = finite_float(payload.get("pressure"))
    if day is None or pressure is None:
        return None

    numbers = {}
    for key in ("pressure_change", "temperature", "humidity", "precipitation_probability"):
        raw = payload.get(key)
        value = finite_float(raw)
        if raw is not None and value is None:
            log.info("Rejected forecast day %s: %s=%r is not a finite number", day, key, raw)
            return None
        numbers[key] = value or 0.0

    return ForecastDay(
        date=day,
        pressure=pressure,
        pressure_change=numbers["pressure_change"],
        temperature=numbers["temperature"],
        humidity=numbers["humidity"],
        condition=payload.get("condition") or "Unknown",
        precipitation_probability=int(numbers["precipitation_probability"]),
    )
