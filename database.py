# link-shortener/database.py
import logging

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from config import Settings
from models import Link, User

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [User, Link]


async def connect_to_mongo(settings: Settings):
    client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
    database = client[settings.MONGO_DB]

    try:
        await database.command("ping")
        logger.info("Connected to MongoDB: %s", settings.MONGO_DB)
        await init_beanie(database=database, document_models=DOCUMENT_MODELS)
        logger.info("Beanie ODM initialized.")
        return client, database
    except Exception:
        logger.exception("MongoDB connection failed")
        client.close()
        raise


async def close_mongo_connection(client: AsyncIOMotorClient):
    client.close()
    logger.info("Disconnected from MongoDB.")
