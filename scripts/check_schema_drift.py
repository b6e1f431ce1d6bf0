from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from giveaway.db.engine import make_engine
from giveaway.models import Base


def _print_ops(ops, depth: int = 0) -> None:
    for op in ops:
        print(f"{'  ' * depth}- {op}")
        nested = getattr(op, "ops", None)
        if nested:
            _print_ops(nested, depth + 1)


def main() -> int:
    """Compare the live schema with the models; exit 1 on drift, 2 on error."""
    engine = make_engine()
    shown_url = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            migration_ctx = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(migration_ctx, Base.metadata).upgrade_ops
    except Exception as exc:
        print(f"Schema drift check errored for {shown_url}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None:
        print(f"Schema drift check errored for {shown_url}: no upgrade ops produced.")
        return 2
    if upgrade_ops.is_empty():
        print(f"Schema matches models for {shown_url}.")
        return 0
    print(f"Schema drift detected for {shown_url}:")
    _print_ops(upgrade_ops.ops or [])
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
