"""
MongoDB connection for the hosted backend.

``db`` stays None unless both DATABASE_URL and DATABASE_NAME are set, so the
service still starts on the local JSON store without a database.
"""
import logging
from typing import Any, Dict, List, Optional

from pymongo import MongoClient

import config

logger = logging.getLogger(__name__)

db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    try:
        client = MongoClient(config.DATABASE_URL, serverSelectionTimeoutMS=5000)
        db = client[config.DATABASE_NAME]
    except Exception:
        logger.exception("Could not configure MongoDB client")
        db = None


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    database=None,
) -> List[Dict[str, Any]]:
    database = database if database is not None else db
    if database is None:
        raise RuntimeError("Database not configured")
    return list(database[collection_name].find(filter_dict or {}, {"_id": 0}))
