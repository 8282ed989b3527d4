# database.py
import functools
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from config import Settings
from exceptions import PersistenceUnavailable

logger = logging.getLogger(__name__)

ATTENDANCE_COLLECTION = "attendance"
EMPLOYEE_COLLECTION = "employees"


def create_client(settings: Settings) -> AsyncIOMotorClient:
    # tz_aware so timestamps come back as UTC-aware datetimes
    return AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True, serverSelectionTimeoutMS=5000)


def get_database(client: AsyncIOMotorClient, settings: Settings) -> AsyncIOMotorDatabase:
    logger.info("Using MongoDB database '%s'", settings.mongodb_db)
    return client[settings.mongodb_db]


def get_attendance_collection(db: AsyncIOMotorDatabase):
    return db[ATTENDANCE_COLLECTION]


def get_employee_collection(db: AsyncIOMotorDatabase):
    return db[EMPLOYEE_COLLECTION]


def translate_mongo_errors(func):
    """Re-raise driver failures as PersistenceUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as exc:
            logger.error("MongoDB operation %s failed: %s", func.__qualname__, exc)
            raise PersistenceUnavailable("Attendance store is unavailable") from exc

    return wrapper
