"""
Tests for the correlation engine mathematical computations.

Covers: pearson bounds and degenerate input, description/strength
thresholds, sample-size gates, per-factor pairing, ranking order.
"""
import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from correlation_engine import (
    FACTOR_DESCRIPTIONS,
    CorrelationEngine,
    analyze,
    describe,
    paired_sample,
    pearson,
)
from models import (
    CorrelationFactor,
    CorrelationResult,
    CorrelationStrength,
    HealthSnapshot,
    PainObservation,
    WeatherSnapshot,
    classify_strength,
)

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _obs(i, pain, pressure=None, temperature=15.0, humidity=60.0, health=None):
    weather = None
    if pressure is not None:
        weather = WeatherSnapshot(pressure, temperature, humidity, "Clouds")
    return PainObservation(
        timestamp=T0 + timedelta(days=i),
        pain_level=pain,
        weather=weather,
        health=health,
    )


# ─── pearson ──────────────────────────────────────────────────


class TestPearson:
    """Verify the raw-sum Pearson implementation."""

    def test_perfect_positive(self):
        assert pearson([1, 2, 3, 4], [10, 20, 30, 40]) == pytest.approx(1.0)

    def test_perfect_negative(self):
        assert pearson([1, 2, 3, 4], [8, 6, 4, 2]) == pytest.approx(-1.0)

    def test_constant_y_is_zero(self):
        assert pearson([1, 5, 9], [1013.25, 1013.25, 1013.25]) == 0.0

    def test_constant_x_is_zero(self):
        assert pearson([4, 4, 4, 4], [1, 2, 3, 4]) == 0.0

    def test_mismatched_lengths_is_zero(self):
        assert pearson([1, 2, 3], [1, 2]) == 0.0

    def test_matches_numpy_corrcoef(self):
        x = [8, 7, 2, 3, 9]
        y = [990, 995, 1020, 1018, 988]
        expected = np.corrcoef(x, y)[0, 1]
        assert pearson(x, y) == pytest.approx(expected, abs=1e-9)

    def test_bounds_on_random_data(self):
        rng = np.random.default_rng(42)
        for _ in range(50):
            n = int(rng.integers(3, 30))
            x = rng.integers(0, 11, size=n)
            y = rng.normal(1010, 8, size=n)
            r = pearson(x, y)
            assert -1.0 <= r <= 1.0
            assert not math.isnan(r)

    def test_non_finite_value_is_zero(self):
        assert pearson([1, 2, 3], [990, float("nan"), 1005]) == 0.0
        assert pearson([1, 2, 3], [990, float("inf"), 1005]) == 0.0

    def test_overflowing_sums_are_zero(self):
        assert pearson([1, 2, 3], [1e200, -1e200, 1e200]) == 0.0


# ─── describe / classify_strength ─────────────────────────────


class TestThresholds:
    """Direction (0.3) and strength (0.2/0.4/0.7) bands are independent."""

    def test_exact_point_three_is_neutral_and_weak(self):
        neutral = FACTOR_DESCRIPTIONS[CorrelationFactor.PRESSURE][2]
        assert describe(CorrelationFactor.PRESSURE, 0.3) == neutral
        assert describe(CorrelationFactor.PRESSURE, -0.3) == neutral
        assert classify_strength(0.3) == CorrelationStrength.WEAK
        result = CorrelationResult(CorrelationFactor.PRESSURE, 0.3, 5, neutral)
        assert result.strength == CorrelationStrength.WEAK

    def test_direction_phrases(self):
        negative, positive, _ = FACTOR_DESCRIPTIONS[CorrelationFactor.SLEEP_DURATION]
        assert describe(CorrelationFactor.SLEEP_DURATION, -0.31) == negative
        assert describe(CorrelationFactor.SLEEP_DURATION, 0.31) == positive

    @pytest.mark.parametrize("r, expected", [
        (0.7, CorrelationStrength.STRONG),
        (-0.95, CorrelationStrength.STRONG),
        (0.69, CorrelationStrength.MODERATE),
        (0.4, CorrelationStrength.MODERATE),
        (-0.39, CorrelationStrength.WEAK),
        (0.2, CorrelationStrength.WEAK),
        (0.19, CorrelationStrength.NEGLIGIBLE),
        (0.0, CorrelationStrength.NEGLIGIBLE),
    ])
    def test_strength_bands(self, r, expected):
        assert classify_strength(r) == expected

    def test_every_factor_has_three_phrases(self):
        for factor in CorrelationFactor:
            assert len(FACTOR_DESCRIPTIONS[factor]) == 3


# ─── sample-size gates ────────────────────────────────────────


class TestSampleSizeGate:

    def test_two_observations_return_empty(self):
        obs = [_obs(0, 8, 990), _obs(1, 2, 1020)]
        assert analyze(obs) == []

    def test_empty_input_returns_empty(self):
        assert analyze([]) == []

    def test_three_observations_produce_pressure_result(self):
        obs = [_obs(0, 8, 990), _obs(1, 2, 1020), _obs(2, 5, 1005)]
        results = analyze(obs)
        pressure = [r for r in results if r.factor == CorrelationFactor.PRESSURE]
        assert len(pressure) == 1
        assert pressure[0].sample_size == 3

    def test_factor_with_two_pairs_is_skipped(self):
        obs = [
            _obs(0, 8, 990, health=HealthSnapshot(sleep_duration=5.0)),
            _obs(1, 2, 1020, health=HealthSnapshot(sleep_duration=8.0)),
            _obs(2, 5, 1005),
            _obs(3, 6, 1000),
        ]
        factors = {r.factor for r in analyze(obs)}
        assert CorrelationFactor.SLEEP_DURATION not in factors
        assert CorrelationFactor.PRESSURE in factors

    def test_missing_values_are_not_zero_filled(self):
        obs = [
            _obs(0, 9, 990, health=HealthSnapshot(step_count=1000)),
            _obs(1, 1, 1020, health=HealthSnapshot(step_count=9000)),
            _obs(2, 5, 1005, health=HealthSnapshot(step_count=5000)),
            _obs(3, 7, 1000, health=HealthSnapshot()),
        ]
        pain, steps = paired_sample(obs, CorrelationFactor.STEP_COUNT)
        assert pain == [9.0, 1.0, 5.0]
        assert steps == [1000.0, 9000.0, 5000.0]

    def test_custom_min_sample_size(self):
        obs = [_obs(i, p, pr) for i, (p, pr) in enumerate([(8, 990), (2, 1020), (5, 1005)])]
        assert CorrelationEngine(min_sample_size=4).analyze(obs) == []


# ─── end-to-end scenario ──────────────────────────────────────


class TestScenarios:

    def test_low_pressure_scenario(self):
        pains = [8, 7, 2, 3, 9]
        pressures = [990, 995, 1020, 1018, 988]
        obs = [_obs(i, p, pr) for i, (p, pr) in enumerate(zip(pains, pressures))]

        results = analyze(obs)
        pressure = next(r for r in results if r.factor == CorrelationFactor.PRESSURE)

        assert pressure.coefficient < -0.3
        assert pressure.description == FACTOR_DESCRIPTIONS[CorrelationFactor.PRESSURE][0]
        assert pressure.strength in (CorrelationStrength.MODERATE, CorrelationStrength.STRONG)
        assert pressure.sample_size == 5

    def test_ranked_by_magnitude(self):
        pains = [8, 7, 2, 3, 9]
        pressures = [990, 995, 1020, 1018, 988]
        temps = [15.0, 12.0, 14.0, 13.0, 15.5]
        obs = [
            _obs(i, p, pr, temperature=t)
            for i, (p, pr, t) in enumerate(zip(pains, pressures, temps))
        ]
        results = analyze(obs)
        magnitudes = [abs(r.coefficient) for r in results]
        assert magnitudes == sorted(magnitudes, reverse=True)
        assert results[0].factor == CorrelationFactor.PRESSURE

    def test_ties_keep_declaration_order(self):
        # Constant temperature and humidity both give r = 0
        obs = [_obs(i, p, 1000.0 + i) for i, p in enumerate([1, 2, 3, 4])]
        results = analyze(obs)
        assert [r.factor for r in results] == [
            CorrelationFactor.PRESSURE,
            CorrelationFactor.TEMPERATURE,
            CorrelationFactor.HUMIDITY,
        ]
        assert results[1].coefficient == 0.0
        assert results[2].coefficient == 0.0

    def test_nan_pressure_reading_is_not_paired(self):
        obs = [_obs(i, p, pr) for i, (p, pr) in enumerate(zip([8, 5, 2], [990, float("nan"), 1005]))]
        results = analyze(obs)
        assert CorrelationFactor.PRESSURE not in [r.factor for r in results]
        assert all(math.isfinite(r.coefficient) for r in results)
        assert paired_sample(obs, CorrelationFactor.PRESSURE) == ([8.0, 2.0], [990.0, 1005.0])
