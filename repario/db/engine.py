# repario/db/engine.py

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from repario.core.config import get_settings


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN on its own and mishandles SAVEPOINT; take over
    # transaction control and turn on foreign key enforcement (cascades).
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str, **kwargs) -> Engine:
    # echo=True if you want to see SQL printed in the terminal
    engine = create_engine(url, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        _configure_sqlite(engine)
    return engine


@lru_cache
def get_engine() -> Engine:
    return create_db_engine(get_settings().DATABASE_URL)
