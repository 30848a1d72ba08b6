"""Open this month's buffer counters for every active employee (run on the 1st)."""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dotenv import load_dotenv

from attendance_engine.common.datetime_utils import now_local
from attendance_engine.config import get_settings_module
from attendance_engine.container import build_container


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    container = build_container(db_config=dict(settings.DB_CONFIG), biometric_config=dict(settings.BIOMETRIC_API))
    today = now_local().date()
    user_ids = [e.user_id for e in container.users_repo.list_active()]
    result = container.buffer_counter.open_month(user_ids, today)
    print(f"OK: {today:%Y-%m} counters created={result.created} skipped={result.skipped}")


if __name__ == "__main__":
    main()
