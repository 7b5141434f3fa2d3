import logging
import sqlite3
from contextlib import asynccontextmanager

import databases
import sqlalchemy
from formstore.config import config

logger = logging.getLogger(__name__)

INITIAL_FORM_VERSION = 1

metadata = sqlalchemy.MetaData()


user_table = sqlalchemy.Table(
    "user",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column("email", sqlalchemy.String, unique=True),
    sqlalchemy.Column("username", sqlalchemy.String, nullable=False),
)

form_table = sqlalchemy.Table(
    "forms",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column("user_id", sqlalchemy.ForeignKey("user.id"), nullable=False),
    sqlalchemy.Column("name", sqlalchemy.String(256), nullable=False),
    sqlalchemy.Column("description", sqlalchemy.Text, nullable=True),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime, server_default=sqlalchemy.func.now(), nullable=False),
    sqlalchemy.Column("updated_at", sqlalchemy.DateTime, server_default=sqlalchemy.func.now(), nullable=False),
    sqlalchemy.Column(
        "form_version",
        sqlalchemy.Integer,
        server_default=sqlalchemy.text(str(INITIAL_FORM_VERSION)),
        nullable=False,
    ),
)

# snapshots are insert-only; form_version is copied from the parent at insert time
forminstance_table = sqlalchemy.Table(
    "form_instances",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True),
    sqlalchemy.Column(
        "form_id",
        sqlalchemy.ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    sqlalchemy.Column("fields", sqlalchemy.Text, nullable=False),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime, server_default=sqlalchemy.func.now(), nullable=False),
    sqlalchemy.Column("form_version", sqlalchemy.Integer, nullable=False),
)


def is_sqlite(url: str) -> bool:
    return databases.DatabaseURL(url).dialect == "sqlite"


def create_engine(url: str):
    """Synchronous engine, used for schema creation only."""
    sync_url = str(databases.DatabaseURL(url).replace(driver=""))
    if is_sqlite(url):
        return sqlalchemy.create_engine(sync_url, connect_args={"check_same_thread": False})
    return sqlalchemy.create_engine(sync_url)


def create_schema(url: str) -> None:
    engine = create_engine(url)
    try:
        metadata.create_all(engine)
        logger.debug("Schema ready", extra={"tables": sorted(metadata.tables)})
    finally:
        engine.dispose()


class ForeignKeysConnection(sqlite3.Connection):
    """sqlite3 connection with foreign keys enforced from the moment it opens.

    The PRAGMA is a no-op inside a transaction, and force-rollback
    databases begin one on connect.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.execute("PRAGMA foreign_keys = ON")


def create_database(url: str, force_rollback: bool = False) -> databases.Database:
    if is_sqlite(url):
        # passed through databases and aiosqlite to sqlite3.connect
        return databases.Database(url, force_rollback=force_rollback, factory=ForeignKeysConnection)
    return databases.Database(url, force_rollback=force_rollback)


@asynccontextmanager
async def acquire(db: databases.Database):
    """Scoped connection from the shared pool, released on every exit path."""
    async with db.connection() as connection:
        yield connection


database = create_database(
    config.DATABASE_URL, force_rollback=config.DB_FORCE_ROLL_BACK
)
