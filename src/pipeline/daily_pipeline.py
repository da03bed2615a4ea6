"""Daily forecast-risk pipeline orchestration with explicit health signaling."""

from __future__ import annotations

import json
import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import config
import risk_scorer
from analysis_service import AnalysisService, AnalysisState
from daily_aggregator import aggregate
from models import ForecastDay, PainObservation
from observation_store import ObservationStore
from pipeline.summary_builder import build_concise_summary
from weather_client import ForecastService, build_forecast_service

log = logging.getLogger("daily_pipeline")


class DailyForecastPipeline:
    """Observations → correlations/insights, forecast → per-day risk."""

    def __init__(
        self,
        store: Optional[ObservationStore] = None,
        forecast_service: Optional[ForecastService] = None,
        analysis_service: Optional[AnalysisService] = None,
        time_zone: Optional[str] = None,
        max_days: Optional[int] = None,
    ):
        self.store = store or ObservationStore()
        self.forecast_service = forecast_service
        self.analysis_service = analysis_service or AnalysisService()
        self.time_zone = time_zone or config.PAIN_TIMEZONE
        self.max_days = config.FORECAST_MAX_DAYS if max_days is None else max_days
        self.last_report: Dict[str, Any] = {}

    def run(self, skip_fetch: bool = False) -> bool:
        """Execute the pipeline and persist machine-readable status."""
        pipeline_status: Dict[str, Any] = {
            "run_date": date.today().isoformat(),
            "run_started_at": datetime.now(timezone.utc).isoformat(),
            "load_ok": False,
            "fetch_ok": bool(skip_fetch),
            "analysis_status": "unknown",
            "forecast_status": "skipped" if skip_fetch else "unknown",
            "degraded_reasons": [],
        }

        log.info("=" * 60)
        log.info("  DAILY PAIN FORECAST STARTED")
        log.info("  Date: %s", date.today())
        log.info("=" * 60)

        report: Dict[str, Any] = {}
        try:
            log.info("Step 1/4: Loading observations...")
            observations = self.store.load_observations()
            pipeline_status["load_ok"] = True

            log.info("Step 2/4: Correlating %d observations...", len(observations))
            state = self.analysis_service.analyze(observations)
            pipeline_status["analysis_status"] = self._analysis_status(state)
            if pipeline_status["analysis_status"] == "degraded":
                pipeline_status["degraded_reasons"].append("insufficient_observations")

            days: List[ForecastDay] = []
            if not skip_fetch:
                log.info("Step 3/4: Fetching forecast...")
                days, fetch_status, reason = self._fetch_forecast_days()
                pipeline_status["forecast_status"] = fetch_status
                pipeline_status["fetch_ok"] = fetch_status in ("cache", "network")
                if reason:
                    pipeline_status["degraded_reasons"].append(reason)
            else:
                log.info("Step 3/4: SKIPPED (--no-fetch)")

            log.info("Step 4/4: Scoring %d forecast days...", len(days))
            report = self._build_report(observations, state, days)
        except Exception as e:
            pipeline_status["analysis_status"] = "failed"
            pipeline_status["degraded_reasons"].append("pipeline_exception")
            log.exception("Pipeline failed: %s", e)
        finally:
            pipeline_status["run_finished_at"] = datetime.now(timezone.utc).isoformat()
            pipeline_status["overall_status"] = self._overall_status(pipeline_status)
            report["status"] = pipeline_status
            self.last_report = report
            self._write_pipeline_status_file(report)
            self._print_summary(report)
            log.info("=" * 60)
            log.info("  DAILY FORECAST COMPLETE (status=%s)", pipeline_status["overall_status"])
            log.info("=" * 60)

        strict_health = os.getenv("STRICT_PIPELINE_HEALTH", "0").strip() == "1"
        if strict_health:
            return pipeline_status["overall_status"] == "success"
        return pipeline_status["overall_status"] != "failed"

    def _fetch_forecast_days(self):
        """Return (days, fetch_status, degraded_reason)."""
        service = self.forecast_service or build_forecast_service()
        self.forecast_service = service
        fetch = service.get_samples()
        days = aggregate(fetch.samples, self.time_zone, self.max_days)
        reason = ""
        if not fetch.ok:
            reason = fetch.reason or "forecast_unavailable"
        elif not days:
            reason = "empty_forecast"
        return days, fetch.status, reason

    def _build_report(
        self,
        observations: List[PainObservation],
        state: AnalysisState,
        days: List[ForecastDay],
    ) -> Dict[str, Any]:
        average = risk_scorer.recent_pain_average(observations)
        scored = []
        for day in days:
            assessment = risk_scorer.score(day, average)
            scored.append({
                **day.to_dict(),
                **assessment.to_dict(),
                "day_risk_percent": risk_scorer.day_risk_percent(day),
                "pressure_trend": risk_scorer.pressure_trend(day),
            })

        tomorrow = risk_scorer.score(days[0] if days else None, average)
        return {
            **state.to_dict(),
            "recent_pain_average": round(average, 2),
            "data_richness": risk_scorer.data_richness(len(observations)),
            "forecast": scored,
            "risk": tomorrow.to_dict(),
            "summary": build_concise_summary(state.insights, tomorrow if days else None),
        }

    @staticmethod
    def _analysis_status(state: AnalysisState) -> str:
        return "success" if state.correlations else "degraded"

    @staticmethod
    def _overall_status(status: Dict[str, Any]) -> str:
        if not status.get("load_ok", False):
            return "failed"
        if status.get("analysis_status") == "failed":
            return "failed"
        if not status.get("fetch_ok", False):
            return "degraded"
        if status.get("analysis_status") == "degraded" or status.get("degraded_reasons"):
            return "degraded"
        return "success"

    @staticmethod
    def _write_pipeline_status_file(report: Dict[str, Any]) -> None:
        today = date.today().isoformat()
        default_path = f"pipeline_status_{today}.json"
        path = os.getenv("PIPELINE_STATUS_PATH", default_path)
        try:
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(report, fh, indent=2, ensure_ascii=False)
            log.info("Pipeline status written to %s", path)
        except OSError as e:
            log.warning("Failed to write pipeline status file: %s", e)

    @staticmethod
    def _print_summary(report: Dict[str, Any]) -> None:
        status = report.get("status", {})
        log.info("RUN SUMMARY:")
        log.info("  Observations:     %s", report.get("observation_count", 0))
        log.info("  Correlations:     %d", len(report.get("correlations", [])))
        log.info("  Forecast days:    %d", len(report.get("forecast", [])))
        log.info("  Analysis status:  %s", status.get("analysis_status"))
        log.info("  Forecast status:  %s", status.get("forecast_status"))
        reasons = status.get("degraded_reasons") or []
        if reasons:
            log.info("  Degraded reasons: %s", ", ".join(reasons))
        log.info("  Overall status:   %s", status.get("overall_status"))
        if report.get("summary"):
            log.info("SUMMARY:\n%s", report["summary"])
