import logging
import os
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine, select, func, text

from taskboard.models import User, MemberStatus, UserRole

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskboard.db")


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine for ``url``; SQLite connections get foreign keys enabled."""
    echo = os.getenv("SQL_ECHO", "false").lower() == "true"
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_size", 20)
        kwargs.setdefault("pool_timeout", 10)
        kwargs.setdefault("pool_recycle", 1800)
        kwargs.setdefault("pool_pre_ping", True)

    new_engine = create_engine(url, echo=echo, **kwargs)

    if new_engine.dialect.name == "sqlite":
        @event.listens_for(new_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine()


def check_db_health(bind: Engine = None) -> bool:
    bind = bind or engine
    try:
        with bind.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("Database health check failed")
        return False


def init_db(bind: Engine = None) -> None:
    """Create missing tables and log user statistics."""
    bind = bind or engine
    SQLModel.metadata.create_all(bind)

    with Session(bind) as session:
        rows = session.exec(
            select(User.role, User.status, func.count(User.id)).group_by(
                User.role, User.status
            )
        ).all()

    counts = {(role, status): count for role, status, count in rows}
    logger.info(
        "Database initialized: leaders=%d members=%d pending=%d rejected=%d",
        sum(c for (role, _), c in counts.items() if role == UserRole.leader),
        sum(c for (role, _), c in counts.items() if role == UserRole.member),
        sum(c for (_, status), c in counts.items() if status == MemberStatus.pending),
        sum(c for (_, status), c in counts.items() if status == MemberStatus.rejected),
    )


def reset_db(bind: Engine = None) -> None:
    """Drop and recreate every table. Development only."""
    bind = bind or engine
    logger.warning("Resetting database schema")
    SQLModel.metadata.drop_all(bind)
    init_db(bind)
