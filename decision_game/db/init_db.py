from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import text
from sqlmodel import SQLModel

from decision_game.db.session import get_engine
from decision_game.db.tables import SCORES_TABLE, ScoreRow  # noqa: F401  (registers the table)


def tables_to_reset() -> list[str]:
    return [SCORES_TABLE, "alembic_version"]


def _find_alembic_dir() -> Path | None:
    """Locate the Alembic migrations directory.

    Checks ``ALEMBIC_DIR`` first, then ``<repo>/alembic/`` next to the
    package. Returns ``None`` when neither exists (e.g. installed from a wheel);
    callers fall back to ``SQLModel.metadata.create_all()``.
    """
    def _is_valid(p: Path) -> bool:
        return p.is_dir() and (p / "env.py").exists() and (p / "versions").is_dir()

    env_dir = os.getenv("ALEMBIC_DIR")
    if env_dir and _is_valid(Path(env_dir)):
        return Path(env_dir)

    repo_dir = Path(__file__).resolve().parent.parent.parent / "alembic"
    if _is_valid(repo_dir):
        return repo_dir

    return None


def _run_alembic_upgrade(alembic_dir: Path) -> None:
    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    url = get_engine().url.render_as_string(hide_password=False)
    alembic_cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    command.upgrade(alembic_cfg, "head")


def migrate() -> None:
    """Run Alembic migrations. Safe to run on every boot, never drops data."""
    engine = get_engine()
    alembic_dir = _find_alembic_dir()
    if alembic_dir is not None:
        print(f"➡️  Running Alembic migrations from {alembic_dir} ...")
        try:
            _run_alembic_upgrade(alembic_dir)
        except Exception as exc:
            print(f"⚠️  Alembic migration failed ({exc}), falling back to create_all...")
            SQLModel.metadata.create_all(engine)
    else:
        print("➡️  No Alembic migrations directory found, using SQLModel create_all...")
        SQLModel.metadata.create_all(engine)

    print("✅ Database migration complete.")


def reset_db() -> None:
    """Drop the score table and recreate it. Destroys all data."""
    print("⚠️  Dropping all tables...")
    with get_engine().begin() as conn:
        for table in tables_to_reset():
            conn.execute(text(f"DROP TABLE IF EXISTS {table}"))

    migrate()
    print("✅ Database reset complete.")


def auto_migrate() -> None:
    """Create the score table on first boot; otherwise apply pending migrations."""
    inspector = sa_inspect(get_engine())
    if not inspector.has_table(SCORES_TABLE):
        migrate()
        return

    alembic_dir = _find_alembic_dir()
    if alembic_dir is not None:
        try:
            _run_alembic_upgrade(alembic_dir)
        except Exception as exc:
            print(f"⚠️  auto_migrate alembic step: {exc}")


if __name__ == "__main__":
    import sys

    if "--reset" in sys.argv:
        reset_db()
    else:
        migrate()

    sys.exit(0)
