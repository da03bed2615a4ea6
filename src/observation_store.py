"""
Read-only PostgreSQL adapter for pain observations.
Single source of truth for connection-string resolution and row mapping.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import psycopg2
from dotenv import load_dotenv
from psycopg2.extras import RealDictCursor

from models import BodyPart, HealthSnapshot, PainObservation, PainType, WeatherSnapshot

load_dotenv()

log = logging.getLogger("observation_store")

PAIN_RECORDS_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS pain_records (
    id          UUID PRIMARY KEY,
    recorded_at TIMESTAMPTZ NOT NULL,
    pain_level  INTEGER NOT NULL,
    body_parts  TEXT[] NOT NULL DEFAULT '{}',
    pain_types  TEXT[] NOT NULL DEFAULT '{}',
    note        TEXT NOT NULL DEFAULT '',
    weather     JSONB,
    health      JSONB
);
CREATE INDEX IF NOT EXISTS idx_pain_records_recorded_at ON pain_records(recorded_at DESC);
"""

SELECT_OBSERVATIONS_SQL = """
SELECT id, recorded_at, pain_level, body_parts, pain_types, note, weather, health
FROM pain_records
ORDER BY recorded_at DESC
"""


def get_conn_str() -> str:
    """Return PostgreSQL connection string.

    Checks POSTGRES_CONNECTION_STRING first, falls back to DATABASE_URL
    (Heroku standard).  Normalises postgres:// to postgresql:// for psycopg2.
    """
    url = (os.getenv("POSTGRES_CONNECTION_STRING") or os.getenv("DATABASE_URL") or "").strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def _json_field(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def _enum_values(enum_cls, values) -> List:
    out = []
    for v in values or []:
        try:
            out.append(enum_cls(v))
        except ValueError:
            log.debug("Skipping unknown %s tag %r", enum_cls.__name__, v)
    return out


def row_to_observation(row: Dict[str, Any]) -> PainObservation:
    return PainObservation(
        id=str(row["id"]) if row.get("id") is not None else None,
        timestamp=row["recorded_at"],
        pain_level=row.get("pain_level"),
        body_parts=_enum_values(BodyPart, row.get("body_parts")),
        pain_types=_enum_values(PainType, row.get("pain_types")),
        note=row.get("note") or "",
        weather=WeatherSnapshot.from_dict(_json_field(row.get("weather"))),
        health=HealthSnapshot.from_dict(_json_field(row.get("health"))),
    )


class ObservationStore:
    """Reads pain observations; never writes rows."""

    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str or get_conn_str()

    def _connect(self):
        if not self.conn_str:
            raise RuntimeError("POSTGRES_CONNECTION_STRING (or DATABASE_URL) is not configured")
        return psycopg2.connect(self.conn_str)

    def bootstrap_schema(self) -> None:
        """Create the pain_records table if it doesn't exist."""
        conn = self._connect()
        conn.autocommit = True
        try:
            with conn.cursor() as cur:
                for stmt in PAIN_RECORDS_SCHEMA_SQL.split(";"):
                    stmt = stmt.strip()
                    if stmt:
                        cur.execute(stmt)
        finally:
            conn.close()

    def load_observations(self, limit: Optional[int] = None) -> List[PainObservation]:
        """Newest-first point-in-time copy of stored observations."""
        query = SELECT_OBSERVATIONS_SQL
        params: tuple = ()
        if limit is not None:
            query += " LIMIT %s"
            params = (int(limit),)

        conn = self._connect()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        finally:
            conn.close()

        observations = [row_to_observation(dict(r)) for r in rows]
        log.info("Loaded %d pain observations", len(observations))
        return observations

    def ping(self) -> bool:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                return cur.fetchone() is not None
        finally:
            conn.close()
