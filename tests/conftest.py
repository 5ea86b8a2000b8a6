"""Pytest configuration and fixtures."""

import functools
import threading
from datetime import datetime

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import DocumentStore
from main import create_app
from search import DentalRecordSearch
from stores import AppointmentStore, DentalRecordStore, InventoryStore, PatientStore, UserStore


@pytest.fixture
def store():
    """A DocumentStore backed by an in-memory MongoDB."""
    store = DocumentStore("mongodb://localhost:27017", "dental_test", client=mongomock.MongoClient())
    store.ensure_indexes()
    return store


@pytest.fixture
def atomic_writes(monkeypatch):
    """Run each single-document operation as one step, as a MongoDB server does.

    mongomock implements find_one_and_update as a find followed by a separate
    update, so two threads can interleave inside one call.
    """
    lock = threading.RLock()

    def locked(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            with lock:
                return method(self, *args, **kwargs)
        return wrapper

    for name in ("find_one", "find_one_and_update", "update_one", "insert_one"):
        monkeypatch.setattr(mongomock.Collection, name, locked(getattr(mongomock.Collection, name)))


@pytest.fixture
def patients(store):
    return PatientStore(store)


@pytest.fixture
def appointments(store):
    return AppointmentStore(store)


@pytest.fixture
def dental_records(store, patients):
    return DentalRecordStore(store, patients)


@pytest.fixture
def inventory(store):
    return InventoryStore(store)


@pytest.fixture
def users(store):
    return UserStore(store)


@pytest.fixture
def record_search(dental_records, patients):
    return DentalRecordSearch(dental_records, patients)


@pytest.fixture
def sample_patient():
    return {
        "first_name": "Ana",
        "last_name": "Lopez",
        "email": "ana.lopez@clinic.com",
        "phone": "555-0101",
        "birth_date": datetime(1990, 5, 1),
        "address": "Calle 1",
        "insurance": "Dental Plus",
    }


@pytest.fixture
def sample_record():
    return {
        "description": "Routine cleaning",
        "diagnosis": "Mild gingivitis",
        "treatment_plan": "Cleaning every six months",
        "treatment_cost": 50.0,
    }


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def _register(client, email, role, password="secret123"):
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": f"{role.title()} User", "role": role},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return _register(client, "admin@clinic.com", "admin")


@pytest.fixture
def doctor_headers(client):
    return _register(client, "doctor@clinic.com", "doctor")
