from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from classroom_invites.config import settings


def create_db_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    SQLite connections get pysqlite's implicit transaction handling turned
    off and every transaction opened with ``BEGIN IMMEDIATE``, so savepoints
    work and concurrent writers queue on the database lock instead of
    failing on a lock upgrade.
    """
    db_engine = create_engine(url)
    if db_engine.dialect.name == "sqlite":

        @event.listens_for(db_engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(db_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return db_engine


engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass
