"""
Daily Pain Forecast — Automated Risk Pipeline
==============================================
Standalone orchestrator.  Run once a day to:
  1. Load pain observations from PostgreSQL
  2. Correlate pain with weather / health factors and derive insights
  3. Fetch the OpenWeatherMap forecast and aggregate it per local day
  4. Score each forecast day and write a status/report JSON

Usage:
    python daily_sync.py               # Full pipeline
    python daily_sync.py --no-fetch    # Analyze only (skip forecast fetch)
    python daily_sync.py --days 3 --tz Asia/Tokyo
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("daily_sync")

import config
from pipeline.daily_pipeline import DailyForecastPipeline


# ═══════════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════════

def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Daily Pain Forecast Pipeline"
    )
    parser.add_argument("--no-fetch", action="store_true",
                        help="Analyze only, skip forecast fetch")
    parser.add_argument("--days", type=int, default=config.FORECAST_MAX_DAYS,
                        help=f"Forecast days to aggregate (default: {config.FORECAST_MAX_DAYS})")
    parser.add_argument("--tz", default=config.PAIN_TIMEZONE,
                        help=f"IANA time zone for day grouping (default: {config.PAIN_TIMEZONE})")
    args = parser.parse_args(argv)

    pipeline = DailyForecastPipeline(time_zone=args.tz, max_days=args.days)
    success = pipeline.run(skip_fetch=args.no_fetch)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
