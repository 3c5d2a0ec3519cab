from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from transitledger.core.config import get_settings

settings = get_settings()


def use_immediate_transactions(engine) -> None:
    """
    SQLite: let SQLAlchemy emit BEGIN itself, as BEGIN IMMEDIATE.

    pysqlite's own transaction handling defers BEGIN and breaks SAVEPOINT.
    IMMEDIATE takes the database write lock up front, so concurrent writers
    wait for each other instead of interleaving their reads and writes.
    """

    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


_is_sqlite = settings.database_url.startswith("sqlite")

# SQLite needs this when a session crosses FastAPI's threadpool.
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)
if _is_sqlite:
    use_immediate_transactions(engine)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def init_db(bind=None) -> None:
    # Table classes register on Base.metadata when their modules are imported.
    from transitledger.models import (  # noqa: F401
        access,
        arrivals,
        job_runs,
        ledger_counters,
        ledger_events,
        reliability_settings,
        route_day_agg,
        route_latest,
        route_version_index,
        schedule_versions,
        schedules,
    )

    Base.metadata.create_all(bind=bind or engine)
