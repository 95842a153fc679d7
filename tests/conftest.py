"""
Shared fixtures: a throwaway SQLite database for tests that need real
transactions and savepoints.
"""

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles

from app.core.database import Base
from app.modules.applications.models import Application  # noqa: F401
from app.modules.audit.models import AuditLog  # noqa: F401
from app.modules.notifications.models import Notification  # noqa: F401
from app.modules.programs.models import Program  # noqa: F401
from app.modules.users.models import User, UserSession  # noqa: F401


@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path):
    """File-backed SQLite engine with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # pysqlite's implicit transactions break SAVEPOINT; issue BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def sqlite_session_maker(sqlite_engine):
    """Session factory configured like the application's."""
    return async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)
