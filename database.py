"""
MongoDB access for the StyleDecor API.

A single ``Database`` is created at startup and shared by every request.
Handlers receive it through the ``get_db`` dependency instead of reaching
for module-level collection handles.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

from bson import ObjectId
from fastapi import HTTPException, Request
from pymongo import MongoClient
from pymongo.server_api import ServerApi

from config import Settings

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, client: MongoClient, name: str):
        self.client = client
        self.db = client[name]
        self.users = self.db["users"]
        self.services = self.db["services"]
        self.bookings = self.db["bookings"]
        self.payments = self.db["payments"]

    @property
    def name(self) -> str:
        return self.db.name

    def role_of(self, email: Optional[str]) -> str:
        user = self.users.find_one({"email": email}) if email else None
        return (user or {}).get("role") or "user"


def build_uri(settings: Settings) -> str:
    if settings.database_url:
        return settings.database_url
    return "mongodb+srv://{}:{}@{}/?retryWrites=true&w=majority".format(
        quote_plus(settings.db_user), quote_plus(settings.db_pass), settings.db_host
    )


def connect(settings: Settings) -> Database:
    client = MongoClient(
        build_uri(settings),
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
    )
    client.admin.command("ping")
    logger.info("MongoDB connected (database=%s)", settings.database_name)
    return Database(client, settings.database_name)


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=503, detail="Database not ready")
    return db


# Helpers

def to_obj_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid id")


def serialize(doc: Optional[Dict]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    return {k: str(v) if isinstance(v, ObjectId) else v for k, v in doc.items()}


def insert_result(res) -> Dict[str, Any]:
    return {"acknowledged": res.acknowledged, "insertedId": str(res.inserted_id)}


def update_result(res) -> Dict[str, Any]:
    upserted = res.upserted_id
    return {
        "acknowledged": res.acknowledged,
        "matchedCount": res.matched_count,
        "modifiedCount": res.modified_count,
        "upsertedId": str(upserted) if upserted is not None else None,
    }


def delete_result(res) -> Dict[str, Any]:
    return {"acknowledged": res.acknowledged, "deletedCount": res.deleted_count}
