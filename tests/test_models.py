"""
Tests for domain records: coercion, optional readings and serialization.
"""
from datetime import date, datetime, timezone

import pytest

from models import (
    BodyPart,
    CorrelationFactor,
    CorrelationResult,
    ForecastDay,
    HealthSnapshot,
    Insight,
    InsightKind,
    PainObservation,
    PainSeverity,
    PainType,
    RawWeatherSample,
    WeatherCondition,
    WeatherSnapshot,
)

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestPainObservation:

    def test_pain_level_clamped(self):
        assert PainObservation(T0, 14).pain_level == 10
        assert PainObservation(T0, -3).pain_level == 0

    def test_pain_level_non_finite(self):
        assert PainObservation(T0, float("inf")).pain_level == 10
        assert PainObservation(T0, float("-inf")).pain_level == 0
        assert PainObservation(T0, float("nan")).pain_level == 0
        assert PainObservation(T0, "7.5").pain_level == 7

    def test_tags_coerced_from_strings(self):
        obs = PainObservation(T0, 5, body_parts=["head", "neck"], pain_types=["dull"])
        assert obs.body_parts == frozenset({BodyPart.HEAD, BodyPart.NECK})
        assert obs.pain_types == frozenset({PainType.DULL})

    def test_unknown_tag_raises(self):
        with pytest.raises(ValueError):
            PainObservation(T0, 5, body_parts=["tail"])

    @pytest.mark.parametrize("level, severity", [
        (0, PainSeverity.MILD),
        (2, PainSeverity.MILD),
        (3, PainSeverity.MODERATE),
        (5, PainSeverity.MODERATE),
        (8, PainSeverity.SEVERE),
        (9, PainSeverity.EXTREME),
    ])
    def test_severity(self, level, severity):
        assert PainObservation(T0, level).severity == severity

    def test_factor_values_absent_without_snapshots(self):
        obs = PainObservation(T0, 5)
        for factor in CorrelationFactor:
            assert obs.factor_value(factor) is None

    def test_factor_values_read_from_snapshots(self):
        obs = PainObservation(
            T0, 5,
            weather=WeatherSnapshot(1001.5, 9.0, 80.0, "Rain"),
            health=HealthSnapshot(step_count=4200, sleep_duration=6.5),
        )
        assert obs.factor_value(CorrelationFactor.PRESSURE) == 1001.5
        assert obs.factor_value(CorrelationFactor.HUMIDITY) == 80.0
        assert obs.factor_value(CorrelationFactor.STEP_COUNT) == 4200.0
        assert obs.factor_value(CorrelationFactor.SLEEP_DURATION) == 6.5
        assert obs.factor_value(CorrelationFactor.HEART_RATE) is None

    def test_with_edits_keeps_snapshots(self):
        weather = WeatherSnapshot(1001.5, 9.0, 80.0, "Rain")
        obs = PainObservation(T0, 5, weather=weather, note="before")
        edited = obs.with_edits(pain_level=7, note="after")
        assert edited.pain_level == 7
        assert edited.note == "after"
        assert edited.weather is weather
        assert edited.timestamp == obs.timestamp
        assert obs.pain_level == 5

    def test_to_dict_is_json_friendly(self):
        obs = PainObservation(T0, 5, body_parts=["neck", "head"])
        out = obs.to_dict()
        assert out["timestamp"] == T0.isoformat()
        assert out["body_parts"] == ["head", "neck"]
        assert out["weather"] is None


class TestSnapshots:

    def test_weather_requires_every_field(self):
        assert WeatherSnapshot.from_dict({"pressure": 1000, "temperature": 10}) is None
        snap = WeatherSnapshot.from_dict(
            {"pressure": 1000, "temperature": 10, "humidity": 55, "weatherCondition": "Clear"}
        )
        assert snap == WeatherSnapshot(1000.0, 10.0, 55.0, "Clear")

    def test_health_legacy_sleep_key(self):
        snap = HealthSnapshot.from_dict({"sleepHours": 7.5, "stepCount": 3000})
        assert snap.sleep_duration == 7.5
        assert snap.step_count == 3000

    def test_health_invalid_readings_become_absent(self):
        snap = HealthSnapshot(step_count=-1, sleep_duration=-2.0, heart_rate=0)
        assert snap.step_count is None
        assert snap.sleep_duration is None
        assert snap.heart_rate is None

    def test_weather_non_finite_readings_are_absent(self):
        snap = WeatherSnapshot(float("nan"), float("inf"), 60, "Rain")
        assert snap.pressure is None
        assert snap.temperature is None
        assert snap.humidity == 60.0
        obs = PainObservation(T0, 5, weather=snap)
        assert obs.factor_value(CorrelationFactor.PRESSURE) is None
        assert obs.factor_value(CorrelationFactor.HUMIDITY) == 60.0

    def test_weather_from_dict_rejects_nan(self):
        data = {"pressure": float("nan"), "temperature": 10, "humidity": 55, "condition": "Clear"}
        assert WeatherSnapshot.from_dict(data) is None

    def test_empty_dicts_are_none(self):
        assert WeatherSnapshot.from_dict({}) is None
        assert HealthSnapshot.from_dict(None) is None


class TestForecastRecords:

    def test_raw_sample_validity(self):
        assert RawWeatherSample(T0, 1000.0, 10.0, 50.0).is_valid()
        assert not RawWeatherSample(T0, float("nan"), 10.0, 50.0).is_valid()
        assert not RawWeatherSample(None, 1000.0, 10.0, 50.0).is_valid()

    def test_condition_mapping(self):
        assert WeatherCondition.from_label("Clear") == WeatherCondition.SUNNY
        assert WeatherCondition.from_label("Thunderstorm") == WeatherCondition.STORMY
        assert WeatherCondition.from_label("Mist") == WeatherCondition.CLOUDY
        assert WeatherCondition.from_label(None) == WeatherCondition.CLOUDY

    def test_forecast_day_to_dict(self):
        day = ForecastDay(date(2026, 3, 2), 1005.0, -8.0, 11.0, 70.0, "Rain", 60)
        out = day.to_dict()
        assert out["date"] == "2026-03-02"
        assert out["pressure_change"] == -8.0
        assert day.weather_condition == WeatherCondition.RAINY


class TestEngineRecords:

    def test_correlation_to_dict_carries_strength(self):
        result = CorrelationResult(CorrelationFactor.PRESSURE, -0.82, 9, "text")
        out = result.to_dict()
        assert out["factor"] == "pressure"
        assert out["strength"] == "strong"
        assert result.strength_text == "Strong Negative"

    def test_insight_identity(self):
        insight = Insight(InsightKind.SUMMARY, "Average pain level", "x")
        assert insight.key == (InsightKind.SUMMARY, "Average pain level")
        assert insight.to_dict()["id"] == "summary-Average pain level"
        assert insight.to_dict()["kind"] == "summary"
