# core/db.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Optional
from sqlalchemy import create_engine, event, text as sa_text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from core.schema_registry import auto_discover, run_all

SCHEMAS_DIR = Path(__file__).resolve().parents[1] / "schemas"


def get_engine(db_url: str) -> Engine:
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty db
        engine = create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        if db_url.startswith("sqlite:///"):
            db_file = db_url.replace("sqlite:///", "")
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(db_url, future=True)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return engine


def init_db(engine: Engine) -> List[str]:
    """Install every schema; returns the modules/installers that failed."""
    # 1) auto-discover schema modules (schemas/*.py)
    broken = auto_discover(SCHEMAS_DIR)

    # 2) run all registered installers
    return broken + run_all(engine)


# ---------------------------------------------------------------------------
# Small query helpers shared by the repository and services
# ---------------------------------------------------------------------------

def exec_sql(conn, sql: str, params: dict = None):
    """Execute SQL with parameters."""
    return conn.execute(sa_text(sql), params or {})


def fetch_one(engine: Engine, sql: str, params: dict = None) -> Optional[Dict]:
    """Fetch single row."""
    with engine.begin() as conn:
        result = exec_sql(conn, sql, params).fetchone()
        return dict(result._mapping) if result else None


def fetch_all(engine: Engine, sql: str, params: dict = None) -> List[Dict]:
    """Fetch all rows."""
    with engine.begin() as conn:
        results = exec_sql(conn, sql, params).fetchall()
        return [dict(r._mapping) for r in results]
