"""
MongoDB access for college reference documents.

One document per college in `colleges`, keyed by the string
`college_id` that historical_cutoffs rows point at. Documents carry
location, type, course list, fee range and safety/placement scores;
fields vary per college, which is why they live here and not in SQL.
"""
import logging
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from app.core.config import get_settings

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "colleges": "colleges",
}

# Lazily created; MongoClient pools connections itself
_client: Optional[MongoClient] = None


def get_mongo_client() -> MongoClient:
    global _client
    if _client is None:
        settings = get_settings()
        timeout_ms = int(settings.store_timeout_seconds * 1000)
        _client = MongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
    return _client


def get_mongo_db() -> Database:
    return get_mongo_client()[get_settings().mongodb_db]


def get_collection(name: str) -> Collection:
    return get_mongo_db()[name]


def test_mongo_connection() -> bool:
    """Ping the server; False (and a warning) when it cannot be reached."""
    try:
        get_mongo_client().admin.command("ping")
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False
    return True


def init_mongo_indexes():
    """Indexes used by college lookups. Safe to call on every startup."""
    colleges = get_collection(COLLECTIONS["colleges"])
    colleges.create_index([("college_id", ASCENDING)], unique=True)
    colleges.create_index([("state", ASCENDING), ("type", ASCENDING)])
