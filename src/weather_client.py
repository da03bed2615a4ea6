"""
Weather provider client, forecast cache and location lookup.
============================================================
Fetches the OpenWeatherMap 5-day / 3-hour forecast and turns it into
RawWeatherSample rows for the daily aggregator.

Resource rules:
  • A successful fetch is cached in a single slot and reused for
    MIN_FETCH_INTERVAL_SECONDS (10 min).
  • Only one fetch may be in flight; a concurrent caller gets the cached
    list (as "stale") or "unavailable" immediately, never a queue slot.
  • Only one location lookup may be in flight; a concurrent request fails
    immediately with LocationUnavailableError.
  • A location lookup times out after LOCATION_TIMEOUT_SECONDS (10 s); the
    watchdog is cancelled the moment a location or a failure arrives.
  • Transient HTTP errors are retried with exponential backoff (tenacity).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

import config
from constants import LOCATION_TIMEOUT_SECONDS, MIN_FETCH_INTERVAL_SECONDS
from models import Location, RawWeatherSample
from num_utils import finite_float

log = logging.getLogger("weather_client")

IP_LOCATION_URL = "https://ipapi.co/json/"


# ═══════════════════════════════════════════════════════════════
#  ERRORS
# ═══════════════════════════════════════════════════════════════

class WeatherError(Exception):
    """Base class for weather-provider failures."""

    reason = "weather_error"


class MissingCredentialError(WeatherError):
    reason = "missing_api_key"


class ForecastFetchError(WeatherError):
    reason = "fetch_failed"


class LocationUnavailableError(WeatherError):
    reason = "location_unavailable"


# ═══════════════════════════════════════════════════════════════
#  PROVIDER CLIENT
# ═══════════════════════════════════════════════════════════════

def parse_forecast_payload(payload: Dict[str, Any]) -> List[RawWeatherSample]:
    """Map an OpenWeatherMap /forecast response onto raw samples.

    Rows with missing numeric fields are kept with None values; the
    aggregator drops them individually.
    """
    samples: List[RawWeatherSample] = []
    for row in (payload or {}).get("list", []) or []:
        main = row.get("main") or {}
        weather = row.get("weather") or [{}]
        dt = finite_float(row.get("dt"))
        samples.append(RawWeatherSample(
            timestamp_utc=datetime.fromtimestamp(dt, tz=timezone.utc) if dt is not None else None,
            pressure=finite_float(main.get("pressure")),
            temperature=finite_float(main.get("temp")),
            humidity=finite_float(main.get("humidity")),
            condition_label=(weather[0] or {}).get("main") or "Unknown",
            precipitation_probability=finite_float(row.get("pop")) or 0.0,
        ))
    return samples


class OpenWeatherMapClient:
    """Thin HTTP client for the OpenWeatherMap forecast endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = config.OPENWEATHERMAP_API_KEY if api_key is None else api_key
        self.session = session or requests.Session()
        self.base_url = (base_url or config.OPENWEATHERMAP_BASE_URL).rstrip("/")
        self.timeout = timeout or config.WEATHER_HTTP_TIMEOUT

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def fetch_forecast(self, location: Location) -> List[RawWeatherSample]:
        if not self.api_key:
            raise MissingCredentialError("OPENWEATHERMAP_API_KEY is not set")
        params = {
            "lat": location.latitude,
            "lon": location.longitude,
            "appid": self.api_key,
            "units": "metric",
        }
        try:
            payload = self._get("/forecast", params)
        except (requests.RequestException, ValueError) as e:
            raise ForecastFetchError(f"Forecast request failed: {e}") from e

        samples = parse_forecast_payload(payload)
        log.info("Fetched %d forecast samples for (%.3f, %.3f)",
                 len(samples), location.latitude, location.longitude)
        return samples


# ═══════════════════════════════════════════════════════════════
#  LOCATION LOOKUP
# ═══════════════════════════════════════════════════════════════

def fixed_location_resolver(latitude: float, longitude: float) -> Callable[[], Location]:
    def resolve() -> Location:
        return Location(latitude, longitude, source="fixed")
    return resolve


def ip_location_resolver(
    session: Optional[requests.Session] = None,
    url: str = IP_LOCATION_URL,
) -> Callable[[], Location]:
    client = session or requests.Session()

    def resolve() -> Location:
        try:
            resp = client.get(url, timeout=LOCATION_TIMEOUT_SECONDS)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise LocationUnavailableError(f"IP geolocation failed: {e}") from e
        lat, lon = finite_float(data.get("latitude")), finite_float(data.get("longitude"))
        if lat is None or lon is None:
            raise LocationUnavailableError("IP geolocation returned no coordinates")
        return Location(lat, lon, source="ip")

    return resolve


def default_location_resolver() -> Callable[[], Location]:
    if config.LOCATION_LAT is not None and config.LOCATION_LON is not None:
        return fixed_location_resolver(config.LOCATION_LAT, config.LOCATION_LON)
    return ip_location_resolver()


class _PendingLookup:
    def __init__(self):
        self.done = threading.Event()
        self.location: Optional[Location] = None
        self.error: Optional[str] = None
        self.timed_out = False
        self.watchdog: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def settle(
        self,
        location: Optional[Location] = None,
        error: Optional[str] = None,
        timed_out: bool = False,
    ) -> bool:
        """First outcome wins; later ones (e.g. a late timeout) are ignored."""
        with self._lock:
            if self.done.is_set():
                return False
            if self.watchdog is not None:
                self.watchdog.cancel()
            self.location = location
            self.error = error
            self.timed_out = timed_out
            self.done.set()
            return True

    def expire(self, error: str) -> None:
        self.settle(error=error, timed_out=True)


class LocationLookup:
    """Single-flight, time-bounded location lookup.

    After a timeout the lookup stays in flight until the resolver thread
    returns, so at most one outbound lookup is ever live.
    """

    def __init__(self, resolver: Callable[[], Location], timeout: float = LOCATION_TIMEOUT_SECONDS):
        self.resolver = resolver
        self.timeout = timeout
        self._lock = threading.Lock()
        self._pending: Optional[_PendingLookup] = None
        self.last_watchdog: Optional[threading.Timer] = None

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    def request(self) -> Location:
        with self._lock:
            if self._pending is not None:
                raise LocationUnavailableError("A location lookup is already in progress")
            pending = _PendingLookup()
            self._pending = pending

        worker: Optional[threading.Thread] = None
        try:
            watchdog = threading.Timer(
                self.timeout, pending.expire,
                args=(f"Location lookup timed out after {self.timeout:g}s",),
            )
            watchdog.daemon = True
            pending.watchdog = watchdog
            self.last_watchdog = watchdog
            watchdog.start()

            worker = threading.Thread(target=self._resolve, args=(pending,), daemon=True)
            worker.start()
            pending.done.wait()
        finally:
            if worker is None:
                self._release(pending)
            elif not pending.timed_out:
                # settled by the resolver itself, so the thread is exiting
                worker.join()
                self._release(pending)

        if pending.error is not None:
            log.warning("Location unavailable: %s", pending.error)
            raise LocationUnavailableError(pending.error)
        return pending.location

    def _release(self, pending: _PendingLookup) -> None:
        with self._lock:
            if self._pending is pending:
                self._pending = None

    def _resolve(self, pending: _PendingLookup) -> None:
        try:
            location = self.resolver()
        except Exception as e:
            pending.settle(error=str(e) or e.__class__.__name__)
        else:
            pending.settle(location=location)
        finally:
            if pending.timed_out:
                self._release(pending)


# ═══════════════════════════════════════════════════════════════
#  FORECAST CACHE + SERVICE
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CacheEntry:
    samples: Tuple[RawWeatherSample, ...]
    fetched_at: float


class ForecastCache:
    """Single mutable slot holding the last successful fetch."""

    def __init__(self):
        self._entry: Optional[CacheEntry] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def store(self, samples, fetched_at: float) -> CacheEntry:
        entry = CacheEntry(tuple(samples), fetched_at)
        self._entry = entry
        return entry

    def get_fresh(self, now: float, min_interval: float = MIN_FETCH_INTERVAL_SECONDS):
        entry = self._entry
        if entry is None or now - entry.fetched_at >= min_interval:
            return None
        return entry.samples


@dataclass(frozen=True)
class ForecastFetch:
    samples: Tuple[RawWeatherSample, ...]
    status: str  # cache | network | stale | unavailable
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status in ("cache", "network")


class ForecastService:
    """Rate-limited, single-flight access to forecast samples."""

    def __init__(
        self,
        client: OpenWeatherMapClient,
        location_lookup: LocationLookup,
        cache: Optional[ForecastCache] = None,
        clock: Callable[[], float] = time.monotonic,
        min_interval: float = MIN_FETCH_INTERVAL_SECONDS,
    ):
        self.client = client
        self.location_lookup = location_lookup
        self.cache = cache or ForecastCache()
        self.clock = clock
        self.min_interval = min_interval
        self._fetch_lock = threading.Lock()

    def get_samples(self) -> ForecastFetch:
        fresh = self.cache.get_fresh(self.clock(), self.min_interval)
        if fresh is not None:
            return ForecastFetch(fresh, "cache")

        if not self._fetch_lock.acquire(blocking=False):
            return self._fallback("fetch_in_flight")

        try:
            location = self.location_lookup.request()
            samples = self.client.fetch_forecast(location)
        except WeatherError as e:
            log.warning("Forecast fetch failed (%s): %s", e.reason, e)
            return self._fallback(e.reason)
        else:
            entry = self.cache.store(samples, self.clock())
            return ForecastFetch(entry.samples, "network")
        finally:
            self._fetch_lock.release()

    def _fallback(self, reason: str) -> ForecastFetch:
        entry = self.cache.entry
        if entry is not None:
            return ForecastFetch(entry.samples, "stale", reason)
        return ForecastFetch((), "unavailable", reason)


def build_forecast_service() -> ForecastService:
    return ForecastService(
        client=OpenWeatherMapClient(),
        location_lookup=LocationLookup(default_location_resolver()),
    )
