import json
import os
import sys
import tempfile
from pathlib import Path

"""Smoke script for the conversion API.

Seeds the example currencies into a temporary DB and runs every action
through the HTTP surface with the chosen provider ('static' by default,
pass 'frankfurter' to hit the live API).

NOTE: This is a lightweight diagnostic and not a formal test.
"""


def run(provider: str = "static"):
    from fastapi.testclient import TestClient

    from forexapi.core.config import Settings
    from forexapi.db.seed import load_seed_file, seed_currencies
    from forexapi.main import create_app

    seed = Path(__file__).with_name("currencies.example.json")
    with tempfile.TemporaryDirectory() as d:
        db_path = Path(d) / "smoke.db"
        seed_currencies(db_path, load_seed_file(seed))
        app = create_app(
            settings_override=Settings(
                db_path=db_path, forex_provider=provider, rate_limit_enabled=False
            )
        )
        client = TestClient(app)
        out = {
            "list": client.get("/api/currencies").json(),
            "convert": client.get(
                "/api/convert", params={"amount": 5, "from": "VYR", "to": "AVE"}
            ).json(),
            "rates": client.get("/api/rates", params={"base": "IRE"}).json(),
            "historical": client.get(
                "/api/historical",
                params={"from": "VYR", "to": "SOV", "start": "2024-01-01", "end": "2024-01-07"},
            ).json(),
        }
        print(json.dumps(out, indent=2))


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    run(*sys.argv[1:2])
