from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.academic_hub.academic_hub.database.bootstrap import (
    ensure_demo_attendance,
    ensure_demo_timetable,
    ensure_demo_users,
)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo users, timetable and attendance.")
    parser.add_argument("--days", type=int, default=30, help="days of attendance history to generate")
    parser.add_argument("--skip-attendance", action="store_true")
    args = parser.parse_args()

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_users(db_config)
    ensure_demo_timetable(db_config)
    if not args.skip_attendance:
        ensure_demo_attendance(db_config, days=args.days)

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )
    print("Demo logins: admin@college.edu/admin123, robert.wilson@college.edu/teacher123, john.doe@college.edu/student123")


if __name__ == "__main__":
    main()
