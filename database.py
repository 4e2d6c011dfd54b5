"""
MongoDB access for the fleet maintenance API.

The connection is configured from DATABASE_URL / DATABASE_NAME. Route handlers
receive the database through the `get_db` dependency so it can be swapped out.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

from errors import ValidationError

load_dotenv()

logger = logging.getLogger(__name__)

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]


def get_db():
    if db is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return db


# ---------------------------
# Document helpers
# ---------------------------

def create_document(database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id as a string."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(value: Any, field: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"{field} must be a valid ID")


def serialize(value: Any) -> Any:
    """Make a Mongo document JSON friendly: `_id` -> `id`, ObjectIds to str, datetimes to ISO UTC."""
    if isinstance(value, dict):
        d = {}
        for k, v in value.items():
            d["id" if k == "_id" else k] = serialize(v)
        return d
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    return value


def ensure_indexes(database) -> None:
    database["credential"].create_index([("email", ASCENDING)], unique=True)
    database["technician"].create_index([("email", ASCENDING)], unique=True)
    database["technician"].create_index([("credential", ASCENDING)])
    database["vehicle"].create_index([("VIN", ASCENDING)], unique=True)
    database["service"].create_index([("technicianId", ASCENDING), ("status", ASCENDING)])
    # At most one open Unassigned service per vehicle.
    database["service"].create_index(
        [("vehicleVIN", ASCENDING)],
        unique=True,
        partialFilterExpression={"status": "Unassigned"},
        name="one_unassigned_service_per_vehicle",
    )
    database["revokedtoken"].create_index([("jti", ASCENDING)], unique=True)
    database["revokedtoken"].create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)
    logger.info("MongoDB indexes ensured")
