"""
Assignment & status engine.

Role gating (who may create assignments) happens at the route boundary; the
operations here only check that a technician acts on their own services.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from database import to_object_id
from errors import ConflictError, NotFoundError, ValidationError
from schemas import ASSIGNED, ASSIGNMENT_STATUSES, ROLE_ADMIN, ROLE_TECHNICIAN, UNASSIGNED
from security import Actor
from technicians import find_by_credential, public_profile

logger = logging.getLogger(__name__)


def _get_service(db, service_id: Optional[str], missing_message: str, not_found_message: str) -> Dict[str, Any]:
    if not service_id:
        raise ValidationError(missing_message)
    service = db["service"].find_one({"_id": to_object_id(service_id, "Service ID")})
    if not service:
        raise NotFoundError(not_found_message)
    return service


def create_assignment(db, service_id: Optional[str]) -> Dict[str, Any]:
    service = _get_service(db, service_id, "Service ID is required.", "Corresponding service schedule not found.")
    if not service.get("technicianId"):
        raise ValidationError("No technician specified on this service. Schedule it with a technician first.")

    now = datetime.now(timezone.utc)
    db["service"].update_one(
        {"_id": service["_id"]},
        {"$set": {"status": ASSIGNED, "assignmentDate": now, "updated_at": now}},
    )
    logger.info("Assigned service %s to technician %s", service["_id"], service["technicianId"])
    return {"message": "Service assigned", "serviceId": str(service["_id"])}


def update_assignment_status(db, service_id: Optional[str], actor: Actor, status: Optional[str]) -> Dict[str, Any]:
    service = _get_service(db, service_id, "Service ID is required.", "Service not found.")
    if not status:
        raise ValidationError("status is required")
    if status not in ASSIGNMENT_STATUSES:
        raise ValidationError("Status must be one of: Assigned, Work In Progress, Completed.")

    tech = find_by_credential(db, actor.id)
    if not tech or tech["_id"] != service.get("technicianId"):
        logger.warning("Credential %s tried to update service %s it is not assigned to", actor.id, service["_id"])
        raise ConflictError("You are not assigned to this service")

    db["service"].update_one(
        {"_id": service["_id"]},
        {"$set": {"status": status, "updated_at": datetime.now(timezone.utc)}},
    )
    logger.info("Service %s moved from %s to %s", service["_id"], service.get("status"), status)
    return {"status": status}


def list_assignments(db, actor: Actor) -> List[Dict[str, Any]]:
    """Services past scheduling; technicians only see their own, with their profile joined in."""
    filt: Dict[str, Any] = {"status": {"$in": list(ASSIGNMENT_STATUSES)}}
    if actor.role == ROLE_ADMIN:
        return list(db["service"].find(filt))
    if actor.role != ROLE_TECHNICIAN:
        return []

    tech = find_by_credential(db, actor.id)
    if not tech:
        return []
    filt["technicianId"] = tech["_id"]
    profile = public_profile(tech)
    services = []
    for service in db["service"].find(filt):
        service["technicianId"] = profile
        services.append(service)
    return services


def list_unassigned_with_technician(db) -> List[Dict[str, Any]]:
    return list(db["service"].find({"status": UNASSIGNED, "technicianId": {"$ne": None}}))
