from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine


def database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    user = os.getenv("POSTGRES_USER", "decision_game")
    password = os.getenv("POSTGRES_PASSWORD", "decision_game")
    host = os.getenv("POSTGRES_HOST", "postgres")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("POSTGRES_DB", "decision_game")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    # built on first use so importing the API does not need a reachable database
    return create_engine(database_url(), pool_pre_ping=True)


_migrated = False


def create_session() -> Session:
    global _migrated
    if not _migrated:
        from decision_game.db.init_db import auto_migrate
        auto_migrate()
        _migrated = True
    return Session(get_engine())
