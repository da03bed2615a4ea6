"""
Shared constants used across the engine modules.
Single source of truth for the fixed statistical and risk parameters.
"""

# Correlation gating
MIN_SAMPLE_SIZE = 3

# Directional description threshold (applies to every factor)
DIRECTION_THRESHOLD = 0.3

# Strength bands on |r|; independent of DIRECTION_THRESHOLD
STRONG_THRESHOLD = 0.7
MODERATE_THRESHOLD = 0.4
WEAK_THRESHOLD = 0.2

# Risk weighting
PRESSURE_RISK_MULTIPLIER = 8
HISTORICAL_RISK_MULTIPLIER = 20
DAY_STRIP_RISK_OFFSET = 10
FALLBACK_RISK_PERCENT = 20
RECENT_PAIN_WINDOW = 10

# Risk level bands on |pressure change| (hPa)
HIGH_RISK_PRESSURE_DELTA = 10
MEDIUM_RISK_PRESSURE_DELTA = 5

# Pressure trend wording threshold (hPa)
PRESSURE_TREND_DELTA = 5

# Four-tier display scale on risk percent
DISPLAY_RISK_EDGES = (25, 50, 75)

# Data richness: percent per recorded observation
RICHNESS_PER_OBSERVATION = 5

# Forecast fetching
DEFAULT_MAX_FORECAST_DAYS = 5
MIN_FETCH_INTERVAL_SECONDS = 10 * 60
LOCATION_TIMEOUT_SECONDS = 10
