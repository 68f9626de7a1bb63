from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def serialize_sqlite_writers(engine) -> None:
    """
    SQLite ignores SELECT ... FOR UPDATE, and pysqlite only opens a transaction
    on the first write. Take over transaction control and start every
    transaction with BEGIN IMMEDIATE so check-then-write runs one at a time.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
