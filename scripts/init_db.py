from __future__ import annotations

import importlib

from dotenv import load_dotenv

from visitor_register.config import get_settings_module
from visitor_register.database.bootstrap import apply_schema, list_tables
from visitor_register.database.connection import DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db = DBConfig.from_mapping(dict(settings.DB_CONFIG))

    applied = apply_schema(db)
    tables = list_tables(db)
    print(f"OK: Applied schema.sql -> {db.describe()} (statements={applied}, tables={len(tables)})")


if __name__ == "__main__":
    main()
