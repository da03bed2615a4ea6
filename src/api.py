"""
FastAPI backend for the pain forecast engine.

Route handlers are defined here; payload conversion lives in routes/helpers.py.
Insufficient data never raises: handlers return empty lists plus a status.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import config
import risk_scorer
from analysis_service import AnalysisService
from constants import RECENT_PAIN_WINDOW
from daily_aggregator import aggregate
from observation_store import ObservationStore
from routes.helpers import (
    forecast_day_from_payload,
    observations_from_payload,
    sample_from_payload,
)
from weather_client import build_forecast_service

log = logging.getLogger("api")


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="Pain Forecast API", version="1.0.0")

_origin_env = os.getenv("FRONTEND_ORIGINS", "")
_origins = [o.strip() for o in _origin_env.split(",") if o.strip()] or [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.state.analysis_service = AnalysisService()
app.state.store = None
app.state.forecast_service = None


def _store() -> ObservationStore:
    if app.state.store is None:
        app.state.store = ObservationStore()
    return app.state.store


def _forecast_service():
    if app.state.forecast_service is None:
        app.state.forecast_service = build_forecast_service()
    return app.state.forecast_service


class AnalysisRequest(BaseModel):
    observations: List[Dict[str, Any]] = Field(default_factory=list)


class AggregateRequest(BaseModel):
    samples: List[Dict[str, Any]] = Field(default_factory=list)
    timezone: str = config.PAIN_TIMEZONE
    max_days: int = config.FORECAST_MAX_DAYS


class RiskRequest(BaseModel):
    forecast_day: Optional[Dict[str, Any]] = None
    recent_pain_average: float = 0.0


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "pain-forecast-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> JSONResponse:
    try:
        _store().ping()
        return JSONResponse({"status": "Online", "message": "Online"})
    except Exception as e:
        return JSONResponse(
            status_code=200,
            content={
                "status": "Degraded",
                "message": f"Observation store unavailable: {e}",
            },
        )


@app.post("/api/v1/analysis")
def run_analysis(req: AnalysisRequest) -> Dict[str, Any]:
    try:
        observations = observations_from_payload(req.observations)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    state = app.state.analysis_service.analyze(observations)
    return state.to_dict()


@app.post("/api/v1/forecast/aggregate")
def aggregate_forecast(req: AggregateRequest) -> Dict[str, Any]:
    samples = [sample_from_payload(s) for s in req.samples]
    try:
        days = aggregate(samples, req.timezone, req.max_days)
    except Exception as e:
        # pandas raises for unknown zone names
        raise HTTPException(status_code=400, detail=f"Invalid timezone {req.timezone!r}: {e}")
    return {"days": [d.to_dict() for d in days], "sample_count": len(samples)}


@app.post("/api/v1/risk")
def score_risk(req: RiskRequest) -> Dict[str, Any]:
    day = forecast_day_from_payload(req.forecast_day)
    assessment = risk_scorer.score(day, req.recent_pain_average)
    out = assessment.to_dict()
    out["display_level"] = risk_scorer.display_risk_level(assessment.risk_percent).value
    if day is not None:
        out["day_risk_percent"] = risk_scorer.day_risk_percent(day)
        out["pressure_trend"] = risk_scorer.pressure_trend(day)
    return out


@app.get("/api/v1/forecast/latest")
def forecast_latest() -> Dict[str, Any]:
    try:
        observations = _store().load_observations(limit=RECENT_PAIN_WINDOW)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    fetch = _forecast_service().get_samples()
    days = aggregate(fetch.samples, config.PAIN_TIMEZONE, config.FORECAST_MAX_DAYS)
    average = risk_scorer.recent_pain_average(observations)

    scored = []
    for day in days:
        assessment = risk_scorer.score(day, average)
        scored.append({
            **day.to_dict(),
            **assessment.to_dict(),
            "day_risk_percent": risk_scorer.day_risk_percent(day),
        })
    headline = risk_scorer.score(days[0] if days else None, average)
    return {
        "days": scored,
        "risk": headline.to_dict(),
        "forecast_status": fetch.status,
        "reason": fetch.reason,
    }
