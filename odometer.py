"""Odometer engine: mileage readings and the initial maintenance service they open."""
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from errors import NotFoundError, ValidationError
from schemas import COMPLETED, OdometerReading
from scheduling import upsert_open_service

logger = logging.getLogger(__name__)

SERVICE_INTERVAL_MILES = int(os.getenv("SERVICE_INTERVAL_MILES", "5000"))


def next_service_mileage(mileage: int, interval: int = SERVICE_INTERVAL_MILES) -> int:
    return mileage + interval


def _latest_open_service_id(db, vin: str) -> Optional[str]:
    cursor = db["service"].find({"vehicleVIN": vin, "status": {"$ne": COMPLETED}}).sort("created_at", -1).limit(1)
    for service in cursor:
        return str(service["_id"])
    return None


def record_odometer_reading(db, vin: str, mileage: Any, service_type: Optional[str] = None) -> Dict[str, Any]:
    vehicle = db["vehicle"].find_one({"VIN": vin})
    if not vehicle:
        raise ValidationError("Vehicle VIN does not exist.")
    if isinstance(mileage, bool) or not isinstance(mileage, int) or mileage <= 0:
        raise ValidationError("mileage must be a positive number greater than 0")

    first_reading = not vehicle.get("odometerReadings")
    if first_reading:
        if not service_type:
            raise ValidationError("serviceType is required when creating an initial service")
        service_id, created = upsert_open_service(db, vin, insert_only={"serviceType": service_type})
        if created:
            logger.info("Opened initial service %s for vehicle %s", service_id, vin)
        else:
            logger.info("Reusing open service %s for vehicle %s", service_id, vin)
    else:
        service_id = _latest_open_service_id(db, vin)

    reading = OdometerReading(reading_id=uuid.uuid4().hex, mileage=mileage, date=datetime.now(timezone.utc))
    db["vehicle"].update_one(
        {"_id": vehicle["_id"]},
        {
            "$push": {"odometerReadings": reading.model_dump(by_alias=True)},
            "$set": {"updated_at": datetime.now(timezone.utc)},
        },
    )
    logger.info("Recorded %s miles for vehicle %s", mileage, vin)
    return {
        "reading": {"readingId": reading.reading_id, "mileage": mileage, "date": reading.date},
        "nextServiceMileage": next_service_mileage(mileage),
        "serviceId": service_id,
    }


def get_odometer_readings(db, vin: str) -> List[Dict[str, Any]]:
    vehicle = db["vehicle"].find_one({"VIN": vin}, {"odometerReadings": 1})
    readings = (vehicle or {}).get("odometerReadings") or []
    if not readings:
        raise NotFoundError("No entries available for this vehicle.")
    return readings
