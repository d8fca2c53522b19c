"""
core/storage.py -- SQLAlchemy engine construction shared by every store.

auth/store.py and notes/store.py each own their schema and queries but build
their engine here, so both databases get the same connection rules:

  SQLite      -- WAL journal mode and foreign keys on every new connection;
                 check_same_thread off because FastAPI runs sync handlers
                 in a thread pool; busy timeout = timeout seconds.
  Other URLs  -- pool_timeout = timeout seconds and pool_pre_ping, so a
                 dropped server connection is replaced instead of failing
                 the request.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or notes/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def build_engine(db_url: str, timeout: float) -> Engine:
    """Create an engine whose lock and pool waits are bounded by timeout seconds."""
    if db_url.startswith("sqlite"):
        engine = create_engine(db_url, connect_args={"check_same_thread": False, "timeout": timeout})
        event.listen(engine, "connect", _configure_sqlite)
        return engine
    return create_engine(db_url, pool_timeout=timeout, pool_pre_ping=True)
