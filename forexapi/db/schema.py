"""Database schema DDL definitions and initialization utilities.

Tables:
  - currencies: virtual currency definitions (rate, direction, real-currency peg)
  - metadata: key/value store (schema version)
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"
SCHEMA_VERSION = 1

# exchange_rate is TEXT so decimal values survive the round trip exactly.
CURRENCIES_DDL = f"""
CREATE TABLE IF NOT EXISTS currencies (
    code TEXT PRIMARY KEY, -- upper-case, e.g. 'VYR'
    name TEXT NOT NULL,
    symbol TEXT NOT NULL DEFAULT '',
    country TEXT NOT NULL DEFAULT '',
    subdivision TEXT NOT NULL DEFAULT '',
    exchange_rate TEXT NOT NULL DEFAULT '0',
    real_currency TEXT NOT NULL, -- 'USD','EUR',...
    exchange_direction TEXT NOT NULL DEFAULT 'real_to_custom'
        CHECK (exchange_direction IN ('real_to_custom','custom_to_real')),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

METADATA_DDL = f"""
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

CURRENCIES_NAME_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_currencies_name ON currencies(name);"
)

DDL_ORDER: Sequence[str] = (
    CURRENCIES_DDL,
    METADATA_DDL,
    CURRENCIES_NAME_INDEX_DDL,
)


def init_db(path: Path) -> int:
    """Create all tables idempotently and return the schema version.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        cur.execute(
            "INSERT INTO metadata (key, value) VALUES ('schema_version', ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, "
            f"updated_at=({BASIC_UTC_NOW})",
            (str(SCHEMA_VERSION),),
        )
        conn.commit()
        return SCHEMA_VERSION
    finally:
        conn.close()
