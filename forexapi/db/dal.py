"""Data Access Layer for currency definitions.

Responsibilities
----------------
- Read currency rows by code (case-insensitive) and list them by name.
- Upsert / delete rows for the administrative seeding path; the conversion
  engine itself only reads.
"""

from __future__ import annotations

from contextlib import closing
from pathlib import Path
import sqlite3
from typing import Any, Dict, List, Optional

from forexapi.models import CurrencyRecord

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

_COLUMNS = (
    "code, name, symbol, country, subdivision, exchange_rate, "
    "real_currency, exchange_direction"
)


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    # ------------------------------------------------------------------
    # Reads
    def get_currency(self, code: str) -> Optional[Dict[str, Any]]:
        with closing(self._connect()) as conn, conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM currencies WHERE code = ?",
                (code.strip().upper(),),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def list_currencies(self) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn, conn:
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM currencies ORDER BY name ASC, code ASC")
            return [dict(r) for r in cur.fetchall()]

    def list_currencies_except(self, code: str) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn, conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM currencies WHERE code != ? "
                "ORDER BY name ASC, code ASC",
                (code.strip().upper(),),
            )
            return [dict(r) for r in cur.fetchall()]

    # ------------------------------------------------------------------
    # Writes (administrative)
    def upsert_currency(self, record: CurrencyRecord) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                f"""
                INSERT INTO currencies ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(code) DO UPDATE SET
                    name = excluded.name,
                    symbol = excluded.symbol,
                    country = excluded.country,
                    subdivision = excluded.subdivision,
                    exchange_rate = excluded.exchange_rate,
                    real_currency = excluded.real_currency,
                    exchange_direction = excluded.exchange_direction,
                    updated_at = ({UTC_NOW_SQL})
                """,
                (
                    record.code,
                    record.name,
                    record.symbol,
                    record.country,
                    record.subdivision,
                    str(record.exchange_rate),
                    record.real_currency,
                    record.direction.value,
                ),
            )
            conn.commit()

    def delete_currency(self, code: str) -> bool:
        with closing(self._connect()) as conn, conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM currencies WHERE code = ?", (code.strip().upper(),))
            conn.commit()
            return cur.rowcount > 0


def row_to_record(row: Dict[str, Any]) -> CurrencyRecord:
    return CurrencyRecord(
        code=row["code"],
        name=row["name"],
        symbol=row.get("symbol") or "",
        country=row.get("country") or "",
        subdivision=row.get("subdivision") or "",
        exchange_rate=str(row["exchange_rate"]),
        real_currency=row["real_currency"],
        direction=row.get("exchange_direction") or "real_to_custom",
    )
