from loguru import logger
from tortoise import Tortoise, connections

from ..core.config import get_settings

# "app.db.database" -> "app.models", whichever package root we were imported from
MODELS_MODULE = __name__.rsplit(".", 2)[0] + ".models"


def tortoise_db_url(database_url: str) -> str:
    # Tortoise spells sqlite URLs without the third slash
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite://")
    return database_url


async def init_db(db_url: str | None = None, generate_schemas: bool = True):
    try:
        if db_url is None:
            db_url = tortoise_db_url(get_settings().absolute_database_url)

        await Tortoise.init(
            db_url=db_url,
            modules={"models": [MODELS_MODULE]},
        )

        if generate_schemas:
            await Tortoise.generate_schemas(safe=True)

        logger.info("Database initialized successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


async def close_db():
    try:
        await Tortoise.close_connections()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")
        raise


async def check_database_health() -> bool:
    try:
        conn = connections.get("default")
        await conn.execute_query("SELECT 1")

        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
