"""
MongoDB access for the dental office API.

A DocumentStore is constructed explicitly and handed to every record store.
The underlying MongoClient is created lazily on first use and then reused.
"""

from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

PATIENTS = "patients"
APPOINTMENTS = "appointments"
DENTAL_RECORDS = "dentalrecords"
INVENTORY = "inventory"
USERS = "users"
COUNTERS = "counters"

ENTITY_COLLECTIONS = (PATIENTS, APPOINTMENTS, DENTAL_RECORDS, INVENTORY, USERS)


class DocumentStore:
    def __init__(self, uri: str, name: str, client: Optional[MongoClient] = None):
        self.uri = uri
        self.name = name
        self._client = client
        self._db = None

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            self._client = MongoClient(self.uri, serverSelectionTimeoutMS=5000)
        return self._client

    @property
    def db(self):
        if self._db is None:
            self._db = self.client[self.name]
        return self._db

    def collection(self, name: str):
        return self.db[name]

    def ping(self) -> bool:
        self.client.admin.command("ping")
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    # ------------------------------------------------------------------
    # Sequential ids
    # ------------------------------------------------------------------

    def next_id(self, collection_name: str) -> int:
        """Return the next public integer id for ``collection_name``.

        One counter document per collection is incremented atomically, so
        concurrent creations never share an id. A collection that already
        holds documents from before the counter existed is seeded from its
        highest ``id`` (or its document count when none carries one).
        """
        counters = self.collection(COUNTERS)
        if counters.find_one({"_id": collection_name}) is None:
            self._seed_counter(collection_name)
        doc = counters.find_one_and_update(
            {"_id": collection_name},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])

    def _seed_counter(self, collection_name: str) -> None:
        coll = self.collection(collection_name)
        last = coll.find_one({"id": {"$exists": True}}, sort=[("id", DESCENDING)])
        if last is not None and isinstance(last.get("id"), int):
            start = last["id"]
        else:
            start = coll.count_documents({})
        try:
            self.collection(COUNTERS).update_one(
                {"_id": collection_name},
                {"$setOnInsert": {"seq": start}},
                upsert=True,
            )
        except DuplicateKeyError:
            # seeded by a concurrent caller
            pass

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def ensure_indexes(self) -> None:
        for name in ENTITY_COLLECTIONS:
            self.collection(name).create_index([("id", ASCENDING)], unique=True)

        users = self.collection(USERS)
        # not unique: soft-deleted users keep their email
        users.create_index([("email", ASCENDING)])
        users.create_index([("role", ASCENDING)])

        appointments = self.collection(APPOINTMENTS)
        appointments.create_index([("appointment_date", ASCENDING), ("appointment_time", ASCENDING)])
        appointments.create_index([("patient_info.id", ASCENDING)])
        appointments.create_index([("status", ASCENDING)])

        patients = self.collection(PATIENTS)
        patients.create_index([("email", ASCENDING)], unique=True)
        patients.create_index([("phone", ASCENDING)])
        patients.create_index([("orthodontics.status", ASCENDING)])

        inventory = self.collection(INVENTORY)
        inventory.create_index([("name", ASCENDING)])
        inventory.create_index([("category", ASCENDING)])
        inventory.create_index([("current_stock", ASCENDING)])

        records = self.collection(DENTAL_RECORDS)
        records.create_index([("patient_id", ASCENDING)])
        records.create_index([("created_at", DESCENDING)])


# ----------------------------------------------------------
# Serialization
# ----------------------------------------------------------

def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    return serialize_value(dict(doc))
