"""
Database module - read-only access to both data stores.

- postgres: historical_cutoffs (SQLAlchemy, raw SQL)
- mongodb: colleges reference documents (pymongo)
"""
from app.db.postgres import execute_raw_sql, get_db_session, get_engine
from app.db.mongodb import COLLECTIONS, get_collection, get_mongo_db

__all__ = [
    "COLLECTIONS",
    "execute_raw_sql",
    "get_collection",
    "get_db_session",
    "get_engine",
    "get_mongo_db",
]
