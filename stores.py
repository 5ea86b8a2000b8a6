"""
Record stores, one per entity collection.

Every store is built on a DocumentStore and addresses documents by their
public integer ``id``, never by the MongoDB ``_id``. Lookups return ``None``
for a missing document; operations that need an existing document raise
``errors.RecordNotFound``. Writes return the pymongo result so callers can
tell "not matched" from "matched".
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError
from pymongo.results import DeleteResult, UpdateResult

import database
from database import DocumentStore
from errors import (
    ConflictError,
    DuplicateEmailError,
    MissingValueError,
    PatientNotFoundError,
    RecordNotFound,
)
from security import hash_password, verify_password

STOCK_UPDATE_ATTEMPTS = 5


def to_bson(value: Any) -> Any:
    # BSON has no plain date type
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, dict):
        return {k: to_bson(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_bson(v) for v in value]
    return value


def text_pattern(term: Optional[str]) -> Dict[str, str]:
    """Case-insensitive literal substring match."""
    return {"$regex": re.escape(term or ""), "$options": "i"}


def without_password(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {k: v for k, v in user.items() if k != "password"}


@dataclass
class Page:
    items: List[Dict[str, Any]]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


# ----------------------------------------------------------
# Delete policies
# ----------------------------------------------------------

class HardDelete:
    """Remove the document."""

    def delete(self, collection, record_id: int) -> DeleteResult:
        return collection.delete_one({"id": record_id})

    def active_filter(self) -> Dict[str, Any]:
        return {}


class SoftDelete:
    """Keep the document and clear its active flag."""

    def __init__(self, flag: str = "is_active"):
        self.flag = flag

    def delete(self, collection, record_id: int) -> UpdateResult:
        return collection.update_one(
            {"id": record_id},
            {"$set": {self.flag: False, "updated_at": datetime.utcnow()}},
        )

    def active_filter(self) -> Dict[str, Any]:
        return {self.flag: True}


# ----------------------------------------------------------
# Base store
# ----------------------------------------------------------

class RecordStore:
    collection_name = ""
    entity = "Record"
    delete_policy = HardDelete()
    default_sort: Optional[List[tuple]] = None
    search_fields: tuple = ()
    generated_fields: tuple = ("_id", "id", "created_at")
    # not writable through update()
    read_only_fields: tuple = ()
    # fields an update may set to null; every other field keeps a value
    nullable_fields: tuple = ()

    def __init__(self, store: DocumentStore):
        self.store = store

    @property
    def collection(self):
        return self.store.collection(self.collection_name)

    def defaults(self) -> Dict[str, Any]:
        return {}

    def prepare(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Hook applied to the fields of a create or update before writing."""
        return data

    def _find(self, query: Dict[str, Any], sort: Optional[List[tuple]] = None) -> List[Dict[str, Any]]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        return list(cursor)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = self.defaults()
        for key, value in data.items():
            if key in self.generated_fields:
                continue
            if value is None and key in fields:
                continue
            fields[key] = value

        doc = {"id": self.store.next_id(self.collection_name)}
        doc.update(to_bson(self.prepare(fields)))
        doc["created_at"] = datetime.utcnow()
        self.collection.insert_one(doc)
        return doc

    def find_by_id(self, record_id: int, include_inactive: bool = False) -> Optional[Dict[str, Any]]:
        query = {"id": record_id}
        if not include_inactive:
            query.update(self.delete_policy.active_filter())
        return self.collection.find_one(query)

    def find_all(self, page: int = 1, limit: int = 10) -> Page:
        query = self.delete_policy.active_filter()
        cursor = self.collection.find(query)
        if self.default_sort:
            cursor = cursor.sort(self.default_sort)
        items = list(cursor.skip((page - 1) * limit).limit(limit))
        total = self.collection.count_documents(query)
        return Page(items=items, total=total, page=page, limit=limit)

    def search_by_name(self, term: str) -> List[Dict[str, Any]]:
        pattern = text_pattern(term)
        query = {"$or": [{field: pattern} for field in self.search_fields]}
        query.update(self.delete_policy.active_filter())
        return self._find(query)

    def update(self, record_id: int, data: Dict[str, Any]) -> UpdateResult:
        skipped = self.generated_fields + self.read_only_fields
        fields = {k: v for k, v in data.items() if k not in skipped}
        for key, value in fields.items():
            if value is None and key not in self.nullable_fields:
                raise MissingValueError(self.entity, key)
        fields = to_bson(self.prepare(fields))
        fields["updated_at"] = datetime.utcnow()
        return self.collection.update_one({"id": record_id}, {"$set": fields})

    def delete(self, record_id: int):
        return self.delete_policy.delete(self.collection, record_id)


class EmailUniqueMixin:
    """Reject a second active document with the same email."""

    def find_by_email(self, email: str, include_inactive: bool = False) -> Optional[Dict[str, Any]]:
        query = {"email": email}
        if not include_inactive:
            query.update(self.delete_policy.active_filter())
        return self.collection.find_one(query)

    def _check_email(self, email: Optional[str], record_id: Optional[int] = None) -> None:
        if email is None:
            return
        existing = self.find_by_email(email)
        if existing is not None and existing.get("id") != record_id:
            raise DuplicateEmailError(self.entity, email)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # check-then-insert; the unique email index catches what slips through
        self._check_email(data.get("email"))
        try:
            return super().create(data)
        except DuplicateKeyError:
            if self.find_by_email(data.get("email")) is not None:
                raise DuplicateEmailError(self.entity, data["email"]) from None
            raise

    def update(self, record_id: int, data: Dict[str, Any]) -> UpdateResult:
        if "email" not in data:
            return super().update(record_id, data)
        email = data["email"]
        self._check_email(email, record_id)
        try:
            return super().update(record_id, data)
        except DuplicateKeyError:
            existing = self.find_by_email(email)
            if existing is not None and existing.get("id") != record_id:
                raise DuplicateEmailError(self.entity, email) from None
            raise


# ----------------------------------------------------------
# Patients
# ----------------------------------------------------------

class PatientStore(EmailUniqueMixin, RecordStore):
    collection_name = database.PATIENTS
    entity = "Patient"
    search_fields = ("first_name", "last_name")
    nullable_fields = ("address", "insurance", "orthodontics")

    def defaults(self):
        return {"orthodontics": None, "dental_records_refs": []}

    def add_orthodontic_adjustment(self, patient_id: int, adjustment: Dict[str, Any]) -> Dict[str, Any]:
        """Append an adjustment, starting the orthodontic treatment on first use.

        Each branch is one atomic document update: the first matches only a
        patient without orthodontics and writes the new sub-document with the
        entry already in it, the second pushes onto an existing one.
        """
        now = datetime.utcnow()
        entry = to_bson(dict(adjustment))
        entry.update({"_id": ObjectId(), "created_at": now})

        updated = self.collection.find_one_and_update(
            {"id": patient_id, "orthodontics": None},
            {
                "$set": {
                    "orthodontics": {"status": "active", "start_date": now, "adjustments": [entry]},
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            updated = self.collection.find_one_and_update(
                {"id": patient_id, "orthodontics": {"$ne": None}},
                {"$push": {"orthodontics.adjustments": entry}, "$set": {"updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
        if updated is None:
            raise RecordNotFound(self.entity, patient_id)
        return updated["orthodontics"]


# ----------------------------------------------------------
# Appointments
# ----------------------------------------------------------

class AppointmentStore(RecordStore):
    collection_name = database.APPOINTMENTS
    entity = "Appointment"
    default_sort = [("appointment_date", DESCENDING)]
    nullable_fields = ("doctor_info",)

    def defaults(self):
        return {"status": "scheduled", "notes": "", "doctor_info": None, "duration_minutes": 30}

    def find_by_date(self, day: date) -> List[Dict[str, Any]]:
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        return self._find(
            {"appointment_date": {"$gte": start, "$lt": end}},
            sort=[("appointment_time", ASCENDING)],
        )

    def find_by_patient(self, patient_id: int) -> List[Dict[str, Any]]:
        return self._find({"patient_info.id": patient_id}, sort=[("appointment_date", DESCENDING)])

    def update_status(self, appointment_id: int, status: str) -> UpdateResult:
        # any status may follow any other
        return self.update(appointment_id, {"status": status})


# ----------------------------------------------------------
# Dental records
# ----------------------------------------------------------

class DentalRecordStore(RecordStore):
    collection_name = database.DENTAL_RECORDS
    entity = "Dental record"
    default_sort = [("created_at", DESCENDING)]
    content_fields = ("description", "diagnosis", "treatment_plan", "treatment_notes")
    nullable_fields = ("next_appointment",)

    def __init__(self, store: DocumentStore, patients: PatientStore):
        super().__init__(store)
        self.patients = patients

    def defaults(self):
        return {
            "treatment_notes": "",
            "file_path": "",
            "next_appointment": None,
            "treatment_cost": 0.0,
            "payment_status": "pending",
            "record_type": "general",
            "created_by_info": {"id": "SYSTEM", "name": "Sistema"},
        }

    def _require_patient(self, patient_id: Optional[int]) -> None:
        if patient_id is None or self.patients.find_by_id(patient_id) is None:
            raise PatientNotFoundError(patient_id)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self._require_patient(data.get("patient_id"))
        return super().create(data)

    def update(self, record_id: int, data: Dict[str, Any]) -> UpdateResult:
        if "patient_id" in data:
            self._require_patient(data["patient_id"])
        return super().update(record_id, data)

    def find_by_patient(self, patient_id: int) -> List[Dict[str, Any]]:
        return self._find({"patient_id": patient_id}, sort=self.default_sort)

    def find_by_type(self, record_type: str) -> List[Dict[str, Any]]:
        return self._find({"record_type": record_type}, sort=self.default_sort)

    def search(self, term: str) -> List[Dict[str, Any]]:
        """Records whose clinical text contains ``term``, newest first."""
        pattern = text_pattern(term)
        return self._find(
            {"$or": [{field: pattern} for field in self.content_fields]},
            sort=self.default_sort,
        )

    def update_payment_status(self, record_id: int, payment_status: str) -> UpdateResult:
        return self.update(record_id, {"payment_status": payment_status})


# ----------------------------------------------------------
# Inventory
# ----------------------------------------------------------

class InventoryStore(RecordStore):
    collection_name = database.INVENTORY
    entity = "Inventory item"
    search_fields = ("name",)
    # stock only moves through adjust_stock
    read_only_fields = ("current_stock", "stock_adjustments")

    def defaults(self):
        return {
            "description": "",
            "current_stock": 0,
            "min_stock": 0,
            "cost_per_unit": 0.0,
            "supplier": "",
            "stock_adjustments": [],
        }

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # the ledger always starts empty
        return super().create({k: v for k, v in data.items() if k != "stock_adjustments"})

    def find_by_category(self, category: str) -> List[Dict[str, Any]]:
        return self._find({"category": category})

    def adjust_stock(self, item_id: int, quantity: int, reason: str) -> Dict[str, Any]:
        """Move ``current_stock`` by ``quantity`` and record it in the ledger.

        The new stock and its ledger entry are written together, guarded by
        the stock value they were computed from. Stock is not clamped at zero.
        """
        for _ in range(STOCK_UPDATE_ATTEMPTS):
            item = self.find_by_id(item_id)
            if item is None:
                raise RecordNotFound(self.entity, item_id)

            seen = item.get("current_stock")
            previous = seen or 0
            new_stock = previous + quantity
            now = datetime.utcnow()
            entry = {
                "quantity": quantity,
                "reason": reason,
                "previous_stock": previous,
                "new_stock": new_stock,
                "timestamp": now,
            }
            updated = self.collection.find_one_and_update(
                {"id": item_id, "current_stock": seen},
                {
                    "$set": {"current_stock": new_stock, "updated_at": now},
                    "$push": {"stock_adjustments": entry},
                },
                return_document=ReturnDocument.AFTER,
            )
            if updated is not None:
                return updated
        raise ConflictError(f"Stock of inventory item {item_id} changed concurrently, try again")


# ----------------------------------------------------------
# Users
# ----------------------------------------------------------

class UserStore(EmailUniqueMixin, RecordStore):
    collection_name = database.USERS
    entity = "User"
    delete_policy = SoftDelete()
    search_fields = ("name", "last_name")
    # the active flag only changes through the delete policy
    read_only_fields = ("password", "is_active")

    def defaults(self):
        return {"last_name": "", "role": "assistant", "specialty": "", "phone": "", "is_active": True}

    def prepare(self, data):
        # only reachable from create(): update() drops the password field
        if data.get("password") is not None:
            data = dict(data, password=hash_password(data["password"]))
        return data

    def find_by_role(self, role: str) -> List[Dict[str, Any]]:
        query = {"role": role}
        query.update(self.delete_policy.active_filter())
        return self._find(query)

    def verify_credentials(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        user = self.find_by_email(email)
        if user is None or not verify_password(password, user.get("password", "")):
            return None
        return without_password(user)

    def permanent_delete(self, user_id: int) -> DeleteResult:
        return self.collection.delete_one({"id": user_id})
