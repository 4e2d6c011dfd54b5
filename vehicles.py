"""Vehicle registry: registration, lookup and the enriched fleet listing."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from database import create_document, to_object_id
from errors import FieldErrors, NotFoundError
from schemas import COMPLETED, UNPAID, VALID_BRANDS, VALID_TYPES, Vehicle
from validators import VehicleCreateRequest

logger = logging.getLogger(__name__)


def register_vehicle(db, payload: VehicleCreateRequest) -> Dict[str, Any]:
    if db["vehicle"].find_one({"VIN": payload.vin}):
        raise FieldErrors.single("VIN", "Vehicle with this VIN already exists")
    vehicle = Vehicle(
        vin=payload.vin,
        type=payload.type,
        make=payload.make,
        model=payload.model,
        year=payload.year,
        last_service_date=datetime.combine(payload.last_service_date, datetime.min.time(), tzinfo=timezone.utc),
    )
    new_id = create_document(db, "vehicle", vehicle)
    logger.info("Registered vehicle %s (%s %s)", payload.vin, payload.make, payload.model)
    return db["vehicle"].find_one({"_id": to_object_id(new_id)})


def get_vehicle(db, vin: str) -> Dict[str, Any]:
    vehicle = db["vehicle"].find_one({"VIN": vin})
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    return vehicle


def is_open_or_unpaid(service: Dict[str, Any]) -> bool:
    payment = service.get("payment") or {}
    return service.get("status") != COMPLETED or payment.get("paymentStatus") == UNPAID


def list_vehicles(db) -> List[Dict[str, Any]]:
    """Supported vehicles, each flagged with whether any of its services is unfinished or unpaid."""
    vehicles = list(db["vehicle"].find({"make": {"$in": list(VALID_BRANDS)}, "type": {"$in": list(VALID_TYPES)}}))
    if not vehicles:
        raise NotFoundError("No Vehicles Available for supported brands/types. Register a vehicle first.")

    vins = [v["VIN"] for v in vehicles]
    open_vins = {
        s["vehicleVIN"]
        for s in db["service"].find({"vehicleVIN": {"$in": vins}}, {"vehicleVIN": 1, "status": 1, "payment": 1})
        if is_open_or_unpaid(s)
    }
    for vehicle in vehicles:
        vehicle["hasOpenUnpaidService"] = vehicle["VIN"] in open_vins
    return vehicles
