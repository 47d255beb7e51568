"""Scheduled job: suspend members in arrears and close expired grace windows.

Run daily from cron, e.g. ``15 6 * * * python scripts/apply_suspensions.py``.
"""
from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv

from club_manager.container import build_container
from club_manager.settings import get_settings_module


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        dues_day=int(settings.DUES_DAY),
        grace_hours=int(settings.REACTIVATION_GRACE_HOURS),
        lookback_months=int(settings.ARREARS_LOOKBACK_MONTHS),
    )
    report = container.suspension_service.apply_suspensions()
    print(
        f"OK: {report.period_year}-{report.period_month:02d} "
        f"suspended={report.applied} grace_cleared={report.cleared}"
    )


if __name__ == "__main__":
    main()
