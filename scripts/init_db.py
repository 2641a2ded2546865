from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.restaurant_attendance.restaurant_attendance.database.bootstrap import apply_schema, list_tables
from src.restaurant_attendance.restaurant_attendance.database.connection import DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    statements = apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = list_tables(db_config)
    print(f"OK: {statements} statements applied to {DBConfig.from_dict(db_config).describe()} ({len(tables)} tables)")


if __name__ == "__main__":
    main()
