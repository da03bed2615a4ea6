"""Configuration loaded from .env"""

import os
from pathlib import Path

from dotenv import load_dotenv

from constants import DEFAULT_MAX_FORECAST_DAYS

load_dotenv(Path(__file__).parent / ".env")
load_dotenv()


def _optional_float(name: str):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


# Forecast aggregation
FORECAST_MAX_DAYS = int(os.getenv("FORECAST_MAX_DAYS", str(DEFAULT_MAX_FORECAST_DAYS)))
PAIN_TIMEZONE = os.getenv("PAIN_TIMEZONE", "UTC")

# Weather provider
OPENWEATHERMAP_API_KEY = os.getenv("OPENWEATHERMAP_API_KEY", "")
OPENWEATHERMAP_BASE_URL = os.getenv(
    "OPENWEATHERMAP_BASE_URL", "https://api.openweathermap.org/data/2.5"
)
WEATHER_HTTP_TIMEOUT = float(os.getenv("WEATHER_HTTP_TIMEOUT", "15"))

# Fixed location (falls back to IP geolocation when unset)
LOCATION_LAT = _optional_float("LOCATION_LAT")
LOCATION_LON = _optional_float("LOCATION_LON")
