"""Run one attendance automation pass (suitable for cron).

Usage: python scripts/run_automation.py [START_ISO [END_ISO]]
"""

from __future__ import annotations

import importlib
import logging
import sys
from datetime import datetime
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dotenv import load_dotenv

from attendance_engine.config import get_settings_module
from attendance_engine.container import build_container
from attendance_engine.core.exceptions import DomainError


def main(argv: list[str]) -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    start = datetime.fromisoformat(argv[0]) if len(argv) > 0 else None
    end = datetime.fromisoformat(argv[1]) if len(argv) > 1 else None

    container = build_container(db_config=dict(settings.DB_CONFIG), biometric_config=dict(settings.BIOMETRIC_API))
    try:
        summary = container.automation.run(start, end)
    except DomainError as e:
        print(f"FAILED: {e}", file=sys.stderr)
        return 1

    print(
        f"OK: {summary.start:%Y-%m-%d %H:%M} .. {summary.end:%Y-%m-%d %H:%M} "
        f"processed={summary.processed} saved={summary.saved} skipped={summary.skipped}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
