"""
MongoDB access for the Portfolio API

Thin helpers over pymongo. Every function takes the Database handle explicitly;
the app keeps the handle on app.state and routes receive it through a dependency.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

CONTENT_COLLECTION = "contents"
PROJECT_COLLECTION = "projects"

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def connect(uri: str, name: str) -> Database:
    # MongoClient connects lazily; the first query reports connection problems
    client = MongoClient(uri, tz_aware=True, serverSelectionTimeoutMS=5000)
    return client[name]


def ping(db: Database) -> bool:
    try:
        db.client.admin.command("ping")
        return True
    except PyMongoError as exc:
        logger.warning("MongoDB ping failed", extra={"error": str(exc)})
        return False


def _object_id(document_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(document_id)
    except (InvalidId, TypeError):
        return None


def _normalize(doc: Optional[dict]) -> Optional[dict]:
    # normalize _id to string
    if doc is None:
        return None
    doc["id"] = str(doc.pop("_id"))
    return doc


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a document stamped with created_at == updated_at and return it with its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = db[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    logger.info("Document created", extra={"collection": collection_name, "id": str(result.inserted_id)})
    return _normalize(data_dict)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {}).sort(NEWEST_FIRST)
    if limit:
        cursor = cursor.limit(limit)
    return [_normalize(doc) for doc in cursor]


def get_document(db: Database, collection_name: str, document_id: str) -> Optional[dict]:
    oid = _object_id(document_id)
    if oid is None:
        return None
    return _normalize(db[collection_name].find_one({"_id": oid}))


def update_document(db: Database, collection_name: str, document_id: str, fields: dict) -> Optional[dict]:
    """Set the given fields, refresh updated_at and return the updated document.

    created_at is never touched here.
    """
    oid = _object_id(document_id)
    if oid is None:
        return None

    changes = {k: v for k, v in fields.items() if k not in ("_id", "id", "created_at")}
    changes["updated_at"] = datetime.now(timezone.utc)

    doc = db[collection_name].find_one_and_update(
        {"_id": oid},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return _normalize(doc)


def delete_document(db: Database, collection_name: str, document_id: str) -> Optional[dict]:
    oid = _object_id(document_id)
    if oid is None:
        return None
    doc = db[collection_name].find_one_and_delete({"_id": oid})
    if doc is not None:
        logger.info("Document deleted", extra={"collection": collection_name, "id": document_id})
    return _normalize(doc)


# Record queries
def list_content(db: Database, category: str) -> List[dict]:
    return get_documents(db, CONTENT_COLLECTION, {"category": category})


def list_projects(db: Database) -> List[dict]:
    return get_documents(db, PROJECT_COLLECTION)
