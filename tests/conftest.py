"""
Pytest fixtures for the fleet maintenance API.

Every test gets a fresh in-memory mongomock database wired into the app
through the `get_db` dependency.
"""
import os

os.environ.setdefault("JWT_SECRET", "test_jwt_secret_for_testing_only")

import mongomock
import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from database import create_document, get_db, to_object_id
from main import app
from schemas import ROLE_TECHNICIAN, WEEKDAYS
from security import create_access_token, hash_password, seed_admin

ADMIN_EMAIL = "admin@admin.com"
ADMIN_PASSWORD = "Admin@123"
TODAY = WEEKDAYS[datetime.now().weekday()]


def auth_headers(credential_id, role):
    return {"Authorization": f"Bearer {create_access_token(str(credential_id), role)}"}


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["fleet_test"]


@pytest.fixture
def client(mongo_db):
    app.dependency_overrides[get_db] = lambda: mongo_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_id(mongo_db):
    return seed_admin(mongo_db, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def admin_headers(admin_id):
    return auth_headers(admin_id, "admin")


@pytest.fixture
def make_technician(mongo_db):
    """Create a credential + technician pair; returns (technician document, auth headers)."""

    def _make(first_name="Test", last_name="Tech", email=None, skills=("Oil Change",), availability=(TODAY,)):
        email = email or f"{first_name.lower()}.{last_name.lower()}@fleet.com"
        cred_id = create_document(mongo_db, "credential", {
            "email": email,
            "password": hash_password("Valid@1234"),
            "role": ROLE_TECHNICIAN,
        })
        tech_id = create_document(mongo_db, "technician", {
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "credential": to_object_id(cred_id),
            "skills": list(skills),
            "availability": list(availability),
        })
        tech = mongo_db["technician"].find_one({"_id": to_object_id(tech_id)})
        return tech, auth_headers(cred_id, ROLE_TECHNICIAN)

    return _make


@pytest.fixture
def make_vehicle(mongo_db):
    def _make(vin="VIN123456", make="Hyundai", type="Car", **extra):
        doc = {
            "VIN": vin,
            "type": type,
            "make": make,
            "model": "i20",
            "year": 2023,
            "lastServiceDate": datetime(2023, 1, 1, tzinfo=timezone.utc),
            "odometerReadings": [],
            "serviceDetails": [],
        }
        doc.update(extra)
        return mongo_db["vehicle"].find_one({"_id": to_object_id(create_document(mongo_db, "vehicle", doc))})

    return _make


@pytest.fixture
def make_service(mongo_db):
    def _make(vehicle_vin, service_type="Oil Change", status="Unassigned", technician=None, payment_status="Unpaid", **extra):
        doc = {
            "vehicleVIN": vehicle_vin,
            "serviceType": service_type,
            "status": status,
            "technicianId": technician["_id"] if technician else None,
            "technicianName": f"{technician['firstName']} {technician['lastName']}" if technician else None,
            "payment": {"paymentStatus": payment_status, "cost": 0, "historyId": None},
        }
        doc.update(extra)
        return mongo_db["service"].find_one({"_id": to_object_id(create_document(mongo_db, "service", doc))})

    return _make
