"""Load currency definitions from a JSON seed file into the SQLite store.

Usage:
    python scripts/seed_currencies.py scripts/currencies.example.json [--db data/currencies.sqlite3]

Existing codes are updated in place, so the script is safe to re-run.
"""

import argparse
import os
import sys
from pathlib import Path


def run(argv=None) -> int:
    from forexapi.core.config import get_settings
    from forexapi.db.seed import load_seed_file, seed_currencies

    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("seed_file", type=Path)
    parser.add_argument("--db", type=Path, default=None, help="SQLite path (defaults to settings)")
    args = parser.parse_args(argv)

    db_path = args.db or get_settings().db_path
    records = load_seed_file(args.seed_file)
    count = seed_currencies(db_path, records)
    print(f"Seeded {count} currencies into {db_path}")
    return 0


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    raise SystemExit(run())
