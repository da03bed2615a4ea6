"""
Domain records for pain observations, forecast samples and engine output.

Every record is an immutable dataclass.  Derived records (ForecastDay,
CorrelationResult, Insight) carry no behaviour beyond read-only properties
and ``to_dict()`` for the presentation / report layers.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, NamedTuple, Optional, Tuple

from constants import MODERATE_THRESHOLD, STRONG_THRESHOLD, WEAK_THRESHOLD
from num_utils import finite_float


# ═══════════════════════════════════════════════════════════════
#  ENUMS
# ═══════════════════════════════════════════════════════════════

class BodyPart(str, Enum):
    """Body regions.  Declaration order is the stable enumeration order."""

    HEAD = "head"
    NECK = "neck"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    UPPER_BACK = "upper_back"
    LOWER_BACK = "lower_back"
    CHEST = "chest"
    ABDOMEN = "abdomen"
    LEFT_ARM = "left_arm"
    RIGHT_ARM = "right_arm"
    LEFT_HAND = "left_hand"
    RIGHT_HAND = "right_hand"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_LEG = "left_leg"
    RIGHT_LEG = "right_leg"
    LEFT_FOOT = "left_foot"
    RIGHT_FOOT = "right_foot"

    @property
    def english_name(self) -> str:
        return self.value.replace("_", " ").title()


class PainType(str, Enum):
    THROBBING = "throbbing"
    TINGLING = "tingling"
    DULL = "dull"
    SHARP = "sharp"
    BURNING = "burning"
    ACHING = "aching"
    STIFF = "stiff"


class PainSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    EXTREME = "extreme"


class CorrelationFactor(str, Enum):
    """Factors tested against pain level, in ranking tie-break order."""

    PRESSURE = "pressure"
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    SLEEP_DURATION = "sleep_duration"
    STEP_COUNT = "step_count"
    HEART_RATE = "heart_rate"

    @property
    def english_name(self) -> str:
        return FACTOR_NAMES[self]


FACTOR_NAMES = {
    CorrelationFactor.PRESSURE: "Atmospheric Pressure",
    CorrelationFactor.TEMPERATURE: "Temperature",
    CorrelationFactor.HUMIDITY: "Humidity",
    CorrelationFactor.SLEEP_DURATION: "Sleep Duration",
    CorrelationFactor.STEP_COUNT: "Step Count",
    CorrelationFactor.HEART_RATE: "Heart Rate",
}


class CorrelationStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NEGLIGIBLE = "negligible"

    @property
    def english_name(self) -> str:
        return self.value.title()


class InsightKind(str, Enum):
    PATTERN = "pattern"
    CORRELATION = "correlation"
    SUMMARY = "summary"
    RECOMMENDATION = "recommendation"


class RiskLevel(str, Enum):
    """Risk bands.  The scorer only emits LOW/MEDIUM/HIGH; VERY_HIGH is display-only."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def english_name(self) -> str:
        return self.value.replace("_", " ").title()


class WeatherCondition(str, Enum):
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    STORMY = "stormy"
    PARTLY_CLOUDY = "partly_cloudy"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "WeatherCondition":
        """Map an OpenWeatherMap ``weather[].main`` label onto a condition."""
        key = (label or "").strip().lower()
        return _CONDITION_LABELS.get(key, cls.CLOUDY)


_CONDITION_LABELS = {
    "clear": WeatherCondition.SUNNY,
    "sunny": WeatherCondition.SUNNY,
    "clouds": WeatherCondition.CLOUDY,
    "cloudy": WeatherCondition.CLOUDY,
    "partly_cloudy": WeatherCondition.PARTLY_CLOUDY,
    "rain": WeatherCondition.RAINY,
    "drizzle": WeatherCondition.RAINY,
    "rainy": WeatherCondition.RAINY,
    "snow": WeatherCondition.SNOWY,
    "snowy": WeatherCondition.SNOWY,
    "thunderstorm": WeatherCondition.STORMY,
    "stormy": WeatherCondition.STORMY,
}


# ═══════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════

def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def clamp_pain_level(value: Any) -> int:
    """Clamp into [0, 10]; unparseable or NaN → 0, ±inf → nearest bound."""
    try:
        level = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(level):
        return 0
    return int(max(0.0, min(10.0, level)))


# ═══════════════════════════════════════════════════════════════
#  OBSERVATIONS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WeatherSnapshot:
    """Weather at the time of an observation.  All fields or nothing.

    Non-finite readings are stored as None so the factor counts as absent.
    """

    pressure: Optional[float]
    temperature: Optional[float]
    humidity: Optional[float]
    condition: str

    def __post_init__(self):
        for name in ("pressure", "temperature", "humidity"):
            object.__setattr__(self, name, finite_float(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["WeatherSnapshot"]:
        if not data:
            return None
        pressure = finite_float(data.get("pressure"))
        temperature = finite_float(data.get("temperature"))
        humidity = finite_float(data.get("humidity"))
        condition = data.get("condition", data.get("weatherCondition"))
        if pressure is None or temperature is None or humidity is None or not condition:
            return None
        return cls(pressure, temperature, humidity, str(condition))


@dataclass(frozen=True)
class HealthSnapshot:
    """Health readings at the time of an observation.  Each field is optional."""

    step_count: Optional[int] = None
    sleep_duration: Optional[float] = None
    heart_rate: Optional[float] = None

    def __post_init__(self):
        steps = finite_float(self.step_count)
        sleep = finite_float(self.sleep_duration)
        hr = finite_float(self.heart_rate)
        object.__setattr__(self, "step_count", int(steps) if steps is not None and steps >= 0 else None)
        object.__setattr__(self, "sleep_duration", sleep if sleep is not None and sleep >= 0 else None)
        object.__setattr__(self, "heart_rate", hr if hr is not None and hr > 0 else None)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["HealthSnapshot"]:
        """Build from a stored dict.  ``sleepHours`` is the legacy sleep key."""
        if not data:
            return None

        def pick(*keys):
            for k in keys:
                if data.get(k) is not None:
                    return data[k]
            return None

        return cls(
            step_count=pick("step_count", "stepCount"),
            sleep_duration=pick("sleep_duration", "sleepDuration", "sleepHours"),
            heart_rate=pick("heart_rate", "heartRate"),
        )


@dataclass(frozen=True)
class PainObservation:
    timestamp: datetime
    pain_level: int
    body_parts: FrozenSet[BodyPart] = frozenset()
    pain_types: FrozenSet[PainType] = frozenset()
    note: str = ""
    weather: Optional[WeatherSnapshot] = None
    health: Optional[HealthSnapshot] = None
    id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "pain_level", clamp_pain_level(self.pain_level))
        object.__setattr__(self, "body_parts", frozenset(BodyPart(p) for p in self.body_parts))
        object.__setattr__(self, "pain_types", frozenset(PainType(p) for p in self.pain_types))

    @property
    def severity(self) -> PainSeverity:
        if self.pain_level <= 2:
            return PainSeverity.MILD
        if self.pain_level <= 5:
            return PainSeverity.MODERATE
        if self.pain_level <= 8:
            return PainSeverity.SEVERE
        return PainSeverity.EXTREME

    def factor_value(self, factor: CorrelationFactor) -> Optional[float]:
        """Return the factor reading, or None when it was not captured."""
        if factor in (CorrelationFactor.PRESSURE, CorrelationFactor.TEMPERATURE,
                      CorrelationFactor.HUMIDITY):
            if self.weather is None:
                return None
            return getattr(self.weather, factor.value)
        if self.health is None:
            return None
        value = getattr(self.health, factor.value)
        return None if value is None else float(value)

    def with_edits(
        self,
        pain_level: Optional[int] = None,
        body_parts: Optional[Iterable[BodyPart]] = None,
        pain_types: Optional[Iterable[PainType]] = None,
        note: Optional[str] = None,
    ) -> "PainObservation":
        """Return an edited copy.  Weather and health snapshots are kept as-is."""
        changes: Dict[str, Any] = {}
        if pain_level is not None:
            changes["pain_level"] = pain_level
        if body_parts is not None:
            changes["body_parts"] = frozenset(body_parts)
        if pain_types is not None:
            changes["pain_types"] = frozenset(pain_types)
        if note is not None:
            changes["note"] = note
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


# ═══════════════════════════════════════════════════════════════
#  FORECAST
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RawWeatherSample:
    """One provider time slot.  Numeric fields are None on malformed rows."""

    timestamp_utc: Optional[datetime]
    pressure: Optional[float]
    temperature: Optional[float]
    humidity: Optional[float]
    condition_label: str = "Unknown"
    precipitation_probability: float = 0.0

    def is_valid(self) -> bool:
        return (
            isinstance(self.timestamp_utc, datetime)
            and finite_float(self.pressure) is not None
            and finite_float(self.temperature) is not None
            and finite_float(self.humidity) is not None
        )


@dataclass(frozen=True)
class ForecastDay:
    date: date
    pressure: float
    pressure_change: float
    temperature: float
    humidity: float
    condition: str
    precipitation_probability: int

    @property
    def weather_condition(self) -> WeatherCondition:
        return WeatherCondition.from_label(self.condition)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


# ═══════════════════════════════════════════════════════════════
#  ENGINE OUTPUT
# ═══════════════════════════════════════════════════════════════

def classify_strength(coefficient: float) -> CorrelationStrength:
    magnitude = abs(coefficient)
    if magnitude >= STRONG_THRESHOLD:
        return CorrelationStrength.STRONG
    if magnitude >= MODERATE_THRESHOLD:
        return CorrelationStrength.MODERATE
    if magnitude >= WEAK_THRESHOLD:
        return CorrelationStrength.WEAK
    return CorrelationStrength.NEGLIGIBLE


@dataclass(frozen=True)
class CorrelationResult:
    factor: CorrelationFactor
    coefficient: float
    sample_size: int
    description: str

    @property
    def strength(self) -> CorrelationStrength:
        return classify_strength(self.coefficient)

    @property
    def strength_text(self) -> str:
        direction = "Negative" if self.coefficient < 0 else "Positive"
        return f"{self.strength.english_name} {direction}"

    def to_dict(self) -> Dict[str, Any]:
        out = _jsonable(asdict(self))
        out["strength"] = self.strength.value
        return out


@dataclass(frozen=True)
class Insight:
    kind: InsightKind
    title: str
    description: str

    @property
    def key(self) -> Tuple[InsightKind, str]:
        return (self.kind, self.title)

    @property
    def id(self) -> str:
        return f"{self.kind.value}-{self.title}"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **_jsonable(asdict(self))}


class RiskAssessment(NamedTuple):
    risk_percent: int
    risk_level: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {"risk_percent": self.risk_percent, "risk_level": self.risk_level.value}


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    source: str = field(default="fixed", compare=False)
