import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import databases

from formstore.config import config
from formstore.database import create_schema, database
from formstore.stores.form import FormsStore, FormsStoreInterface

logger = logging.getLogger(__name__)


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.getLogger("formstore").setLevel(level.upper())
    logging.getLogger("databases").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(
    db: databases.Database = database,
    store_factory: Callable[[databases.Database], FormsStoreInterface] = FormsStore,
) -> AsyncIterator[FormsStoreInterface]:
    """Connect the shared database for the lifetime of the caller.

    Yields the store built by ``store_factory`` around ``db``; the connection
    pool is closed on exit, including when the body raises.
    """
    configure_logging()
    create_schema(str(db.url))
    # connect database
    await db.connect()
    logger.info(f"Connected to {db.url.obscure_password}")
    try:
        yield store_factory(db)
    finally:
        # disconnect database
        await db.disconnect()
        logger.info("Database disconnected")
