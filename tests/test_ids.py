"""Tests for sequential id allocation."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import mongomock

import database


class TestNextId:
    """Test cases for DocumentStore.next_id."""

    def test_empty_collection_starts_at_one(self, store):
        """Sequential creations get 1..N with no gaps."""
        ids = [store.next_id(database.PATIENTS) for _ in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    def test_counters_are_per_collection(self, store):
        """Each collection has its own sequence."""
        assert store.next_id(database.PATIENTS) == 1
        assert store.next_id(database.INVENTORY) == 1
        assert store.next_id(database.PATIENTS) == 2

    def test_seeded_from_highest_existing_id(self, store):
        """A collection filled before the counter existed continues after its max id."""
        coll = store.collection(database.USERS)
        coll.insert_many([{"id": 3, "email": "a@clinic.com"}, {"id": 7, "email": "b@clinic.com"}])

        assert store.next_id(database.USERS) == 8

    def test_seeded_from_count_without_ids(self):
        """Documents without an id seed the counter with their count."""
        store = database.DocumentStore("mongodb://localhost:27017", "legacy", client=mongomock.MongoClient())
        coll = store.collection(database.INVENTORY)
        coll.insert_many([{"name": "Gloves"}, {"name": "Masks"}, {"name": "Floss"}])

        assert store.next_id(database.INVENTORY) == 4

    def test_ids_are_never_reused(self, inventory):
        """Deleting the newest document does not hand its id out again."""
        first = inventory.create({"name": "Gloves", "category": "supplies"})
        second = inventory.create({"name": "Masks", "category": "supplies"})
        inventory.delete(second["id"])

        third = inventory.create({"name": "Floss", "category": "supplies"})

        assert (first["id"], second["id"], third["id"]) == (1, 2, 3)


class TestConcurrentIds:
    """Test cases for id allocation under concurrent callers."""

    def test_parallel_next_id(self, store, atomic_writes):
        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(lambda _: store.next_id(database.PATIENTS), range(20)))

        assert sorted(ids) == list(range(1, 21))

    def test_parallel_seeding(self, store, atomic_writes):
        """Callers racing to seed the counter all continue from the same max id."""
        store.collection(database.USERS).insert_one({"id": 7, "email": "b@clinic.com"})

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(lambda _: store.next_id(database.USERS), range(20)))

        assert sorted(ids) == list(range(8, 28))

    def test_parallel_creates(self, appointments, atomic_writes):
        def book(n):
            return appointments.create({
                "appointment_date": datetime(2025, 3, 10),
                "appointment_time": "09:30",
                "type": "checkup",
                "patient_info": {"id": n + 1, "name": f"Patient {n}"},
            })

        with ThreadPoolExecutor(max_workers=8) as pool:
            created = list(pool.map(book, range(20)))

        assert sorted(a["id"] for a in created) == list(range(1, 21))
        assert appointments.collection.count_documents({}) == 20


class TestSerializeDoc:
    """Test cases for serialize_doc."""

    def test_nested_object_ids(self):
        from bson import ObjectId

        oid = ObjectId()
        doc = {"_id": oid, "orthodontics": {"adjustments": [{"_id": oid, "description": "x"}]}}

        result = database.serialize_doc(doc)

        assert result["_id"] == str(oid)
        assert result["orthodontics"]["adjustments"][0]["_id"] == str(oid)

    def test_empty(self):
        assert database.serialize_doc(None) is None
