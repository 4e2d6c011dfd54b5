import pytest
from bson import ObjectId

from odometer import SERVICE_INTERVAL_MILES, record_odometer_reading
from errors import ValidationError

VIN = "ABC123XYZ"
BASE = "/api/vehicles"


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle(vin=VIN)


class TestRecordReading:
    def test_unknown_vehicle(self, client, admin_headers, vehicle):
        res = client.post(f"{BASE}/INVALIDVIN/odometer", json={"mileage": 1500, "serviceType": "Oil Change"}, headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Vehicle VIN does not exist."

    def test_first_reading_requires_service_type(self, client, admin_headers, vehicle):
        res = client.post(f"{BASE}/{VIN}/odometer", json={"mileage": 1500}, headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "serviceType is required when creating an initial service"

    def test_invalid_token(self, client, vehicle):
        res = client.post(
            f"{BASE}/{VIN}/odometer",
            json={"mileage": 1500, "serviceType": "Oil Change"},
            headers={"Authorization": "Bearer invalidtoken"},
        )
        assert res.status_code == 401

    @pytest.mark.parametrize("mileage", [0, -10, "abc"])
    def test_rejects_non_positive_mileage(self, client, admin_headers, vehicle, mileage):
        res = client.post(f"{BASE}/{VIN}/odometer", json={"mileage": mileage, "serviceType": "Oil Change"}, headers=admin_headers)
        assert res.status_code == 400
        assert "errors" in res.json()

    def test_first_reading_creates_service(self, client, admin_headers, mongo_db, vehicle):
        res = client.post(f"{BASE}/{VIN}/odometer", json={"mileage": 1500, "serviceType": "Oil Change"}, headers=admin_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["reading"]["readingId"]
        assert body["nextServiceMileage"] == 1500 + SERVICE_INTERVAL_MILES

        service = mongo_db["service"].find_one({"_id": ObjectId(body["serviceId"])})
        assert service["vehicleVIN"] == VIN
        assert service["serviceType"] == "Oil Change"
        assert service["status"] == "Unassigned"
        assert service["technicianId"] is None
        assert len(mongo_db["vehicle"].find_one({"VIN": VIN})["odometerReadings"]) == 1

    def test_later_readings_never_create_services(self, mongo_db, vehicle):
        first = record_odometer_reading(mongo_db, VIN, 1500, "Oil Change")
        second = record_odometer_reading(mongo_db, VIN, 2500)
        third = record_odometer_reading(mongo_db, VIN, 3000, "Brake Repair")

        assert mongo_db["service"].count_documents({"vehicleVIN": VIN}) == 1
        assert second["serviceId"] == first["serviceId"]
        assert third["serviceId"] == first["serviceId"]
        assert [r["mileage"] for r in mongo_db["vehicle"].find_one({"VIN": VIN})["odometerReadings"]] == [1500, 2500, 3000]

    def test_later_reading_without_open_service(self, mongo_db, vehicle):
        first = record_odometer_reading(mongo_db, VIN, 1500, "Oil Change")
        mongo_db["service"].update_one({"_id": ObjectId(first["serviceId"])}, {"$set": {"status": "Completed"}})
        assert record_odometer_reading(mongo_db, VIN, 2000)["serviceId"] is None

    def test_first_reading_reuses_open_unassigned_service(self, mongo_db, vehicle, make_service):
        existing = make_service(VIN, service_type="Battery Test")
        result = record_odometer_reading(mongo_db, VIN, 800, "Oil Change")
        assert result["serviceId"] == str(existing["_id"])
        assert mongo_db["service"].count_documents({"vehicleVIN": VIN}) == 1
        assert mongo_db["service"].find_one({"_id": existing["_id"]})["serviceType"] == "Battery Test"

    def test_first_reading_keeps_scheduled_service_details(self, mongo_db, vehicle, make_service, make_technician):
        tech, _ = make_technician(first_name="Brake", last_name="Tech", skills=("Brake Repair",))
        existing = make_service(VIN, service_type="Brake Repair", technician=tech)
        before = mongo_db["service"].find_one({"_id": existing["_id"]})

        result = record_odometer_reading(mongo_db, VIN, 1200, "Oil Change")

        after = mongo_db["service"].find_one({"_id": existing["_id"]})
        assert result["serviceId"] == str(existing["_id"])
        assert after["serviceType"] == "Brake Repair"
        assert after["technicianId"] == tech["_id"]
        assert after["technicianName"] == before["technicianName"]
        assert after["updated_at"] == before["updated_at"]

    def test_engine_rechecks_mileage(self, mongo_db, vehicle):
        with pytest.raises(ValidationError):
            record_odometer_reading(mongo_db, VIN, 0, "Oil Change")


class TestGetReadings:
    def test_unknown_vehicle(self, client, admin_headers, vehicle):
        res = client.get(f"{BASE}/INVALIDVIN/odometer", headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "No entries available for this vehicle."

    def test_vehicle_without_readings(self, client, admin_headers, vehicle):
        res = client.get(f"{BASE}/{VIN}/odometer", headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["message"] == "No entries available for this vehicle."

    def test_returns_readings(self, client, admin_headers, mongo_db, vehicle):
        mongo_db["vehicle"].update_one({"VIN": VIN}, {"$push": {"odometerReadings": {"readingId": "R001", "mileage": 1500}}})
        res = client.get(f"{BASE}/{VIN}/odometer", headers=admin_headers)
        assert res.status_code == 200
        assert res.json() == [{"readingId": "R001", "mileage": 1500}]

    def test_scenario_empty_then_record_then_read(self, client, admin_headers, vehicle):
        assert client.get(f"{BASE}/{VIN}/odometer", headers=admin_headers).status_code == 400
        res = client.post(f"{BASE}/{VIN}/odometer", json={"mileage": 1500, "serviceType": "Oil Change"}, headers=admin_headers)
        assert res.status_code == 200
        assert res.json()["serviceId"]
        res = client.get(f"{BASE}/{VIN}/odometer", headers=admin_headers)
        assert res.status_code == 200
        assert len(res.json()) == 1
