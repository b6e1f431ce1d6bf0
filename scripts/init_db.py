from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from giveaway.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def migrate(revision: str = "head") -> None:
    """Run Alembic ``upgrade`` against the configured ``DB_URL``."""
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(cfg, revision)


def main() -> None:
    migrate()
    engine = make_engine()
    try:
        tables = sorted(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    print("Giveaway tables:", ", ".join(tables))


if __name__ == "__main__":
    main()
