from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.schema import MetaData

from reelcast.infra.settings import settings

# Deterministic constraint/index names (prevents Alembic churn)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _engine_kwargs(url: str) -> dict[str, Any]:
    """Dialect-aware engine options.

    Pool sizing and connect timeouts only apply to server databases; SQLite
    needs ``check_same_thread`` disabled because polls are served from a
    worker thread pool.
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.pool_size,
        "max_overflow": settings.max_overflow,
        "pool_timeout": settings.pool_timeout,
        "connect_args": {"connect_timeout": settings.connect_timeout}
        if "postgresql" in url
        else {},
    }


engine = create_engine(
    settings.database_url,
    echo=settings.echo_sql,
    pool_pre_ping=True,
    future=True,
    **_engine_kwargs(settings.database_url),
)


def _install_connect_hooks(target: Engine) -> Engine:
    @event.listens_for(target, "connect")
    def _configure_connection(dbapi_conn, _):
        if target.dialect.name == "postgresql":
            with dbapi_conn.cursor() as cur:
                cur.execute("SET search_path TO public")
        elif target.dialect.name == "sqlite":
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return target


_install_connect_hooks(engine)


SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def get_engine(db_url: str | None = None) -> Engine:
    """Return the global engine, or a new one (with connect hooks) for ``db_url``."""
    if not db_url or db_url == settings.database_url:
        return engine

    return _install_connect_hooks(
        create_engine(
            db_url,
            echo=False,
            pool_pre_ping=True,
            future=True,
            **_engine_kwargs(db_url),
        )
    )


def init_db(bind: Engine | None = None) -> None:
    """Create any missing tables directly from the model metadata.

    Development convenience for SQLite stores; production schemas are managed
    with Alembic.
    """
    from reelcast.domain import entities  # noqa: F401  # register mappers

    Base.metadata.create_all(bind or engine)
