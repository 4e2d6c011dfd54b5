"""
Scheduling engine.

A vehicle has at most one open Unassigned service. Scheduling again for the
same vehicle refines that service in place instead of opening a duplicate;
the lookup and the write are a single upsert keyed on (vehicleVIN, Unassigned).
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from database import to_object_id
from errors import ConflictError, NotFoundError, ValidationError
from schemas import UNASSIGNED, Payment
from technicians import full_name, get_technician, has_active_assignment
from validators import ScheduleRequest

logger = logging.getLogger(__name__)


def resolve_vehicle(db, vehicle_vin: Optional[str] = None, vehicle_id: Optional[str] = None) -> Dict[str, Any]:
    if not vehicle_vin and not vehicle_id:
        raise ValidationError("vehicleVIN or vehicleId is required")
    if vehicle_vin and vehicle_id:
        raise ValidationError("Provide only one of vehicleVIN or vehicleId")
    if vehicle_vin:
        vehicle = db["vehicle"].find_one({"VIN": vehicle_vin})
    else:
        vehicle = db["vehicle"].find_one({"_id": to_object_id(vehicle_id, "vehicleId")})
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    return vehicle


def upsert_open_service(db, vehicle_vin: str, fields: Optional[Dict[str, Any]] = None,
                        insert_only: Optional[Dict[str, Any]] = None) -> Tuple[str, bool]:
    """
    Apply `fields` to the vehicle's Unassigned service, creating it when none exists.

    Returns (service id, created). Fields left out keep their stored value on
    update and take the default of a fresh service on insert. `insert_only`
    values only seed a new service; an existing one is returned untouched.
    """
    now = datetime.now(timezone.utc)
    updates = dict(fields or {})
    if updates:
        updates["updated_at"] = now
    defaults = {
        "technicianId": None,
        "technicianName": None,
        "description": None,
        "dueServiceDate": None,
        "assignmentDate": None,
        "payment": Payment().model_dump(by_alias=True),
        "created_at": now,
        "updated_at": now,
    }
    defaults.update(insert_only or {})
    on_insert = {k: v for k, v in defaults.items() if k not in updates}
    operations: Dict[str, Any] = {"$setOnInsert": on_insert}
    if updates:
        operations["$set"] = updates
    result = db["service"].update_one(
        {"vehicleVIN": vehicle_vin, "status": UNASSIGNED},
        operations,
        upsert=True,
    )
    if result.upserted_id is not None:
        return str(result.upserted_id), True
    existing = db["service"].find_one({"vehicleVIN": vehicle_vin, "status": UNASSIGNED}, {"_id": 1})
    return str(existing["_id"]), False


def schedule_service(db, payload: ScheduleRequest) -> Dict[str, Any]:
    vehicle = resolve_vehicle(db, payload.vehicle_vin, payload.vehicle_id)
    if not payload.service_type:
        raise ValidationError("serviceType is required")

    fields: Dict[str, Any] = {"serviceType": payload.service_type}
    if payload.description is not None:
        fields["description"] = payload.description
    if payload.due_service_date is not None:
        fields["dueServiceDate"] = datetime.combine(payload.due_service_date, datetime.min.time(), tzinfo=timezone.utc)

    if payload.technician_id:
        tech = get_technician(db, payload.technician_id)
        if has_active_assignment(db, tech["_id"]):
            logger.warning("Technician %s already busy, refusing schedule for %s", tech["_id"], vehicle["VIN"])
            raise ConflictError("Technician already has an active assignment")
        fields["technicianId"] = tech["_id"]
        fields["technicianName"] = full_name(tech)

    service_id, created = upsert_open_service(db, vehicle["VIN"], fields)
    if created:
        logger.info("Scheduled service %s for vehicle %s", service_id, vehicle["VIN"])
        return {"message": "Service scheduled", "serviceId": service_id}
    logger.info("Updated open service %s for vehicle %s", service_id, vehicle["VIN"])
    return {"message": "Service updated", "serviceId": service_id}
