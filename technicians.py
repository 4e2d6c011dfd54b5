"""Technician directory: registration, lookups and eligibility for new work."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from database import create_document, to_object_id
from errors import NotFoundError, ValidationError
from schemas import ACTIVE_STATUSES, ROLE_TECHNICIAN, WEEKDAYS, Credential, PasswordHash, Technician
from security import hash_password
from validators import TechnicianRegisterRequest

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "password": "password",
    "skills": "skills",
    "availability": "availability",
}


def full_name(tech: Dict[str, Any]) -> str:
    return f"{tech.get('firstName', '')} {tech.get('lastName', '')}".strip()


def public_profile(tech: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "_id": tech["_id"],
        "firstName": tech.get("firstName"),
        "lastName": tech.get("lastName"),
        "email": tech.get("email"),
        "skills": tech.get("skills", []),
        "availability": tech.get("availability", []),
    }


def register_technician(db, payload: TechnicianRegisterRequest) -> Dict[str, Any]:
    missing = [name for attr, name in REQUIRED_FIELDS.items() if not getattr(payload, attr)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    email = payload.email.lower()
    if db["credential"].find_one({"email": email}) or db["technician"].find_one({"email": email}):
        raise ValidationError("Technician with this email already exists")

    cred = Credential(email=email, password=PasswordHash(**hash_password(payload.password)), role=ROLE_TECHNICIAN)
    cred_id = create_document(db, "credential", cred)
    tech = Technician(
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=email,
        credential=to_object_id(cred_id),
        skills=payload.skills,
        availability=payload.availability,
    )
    tech_id = create_document(db, "technician", tech)
    logger.info("Registered technician %s (%s)", tech_id, email)

    created = db["technician"].find_one({"_id": to_object_id(tech_id)})
    profile = public_profile(created)
    profile["role"] = ROLE_TECHNICIAN
    return profile


def get_technician(db, technician_id: Any) -> Dict[str, Any]:
    tech = db["technician"].find_one({"_id": to_object_id(technician_id, "technicianId")})
    if not tech:
        raise NotFoundError("Technician not found")
    return tech


def find_by_credential(db, credential_id: str) -> Optional[Dict[str, Any]]:
    try:
        cred_oid = to_object_id(credential_id, "credential")
    except ValidationError:
        return None
    return db["technician"].find_one({"credential": cred_oid})


def has_active_assignment(db, technician_oid) -> bool:
    return db["service"].find_one({"technicianId": technician_oid, "status": {"$in": list(ACTIVE_STATUSES)}}) is not None


def list_eligible_technicians(db, service_type: Optional[str] = None, day: Optional[str] = None) -> List[Dict[str, Any]]:
    """Technicians with the skill, working on `day` (default today), and without an active assignment."""
    day = (day or WEEKDAYS[date.today().weekday()]).strip().lower()
    if day not in WEEKDAYS:
        raise ValidationError(f"Invalid day. Must be one of: {', '.join(WEEKDAYS)}")
    filt: Dict[str, Any] = {"availability": day}
    if service_type:
        filt["skills"] = service_type
    busy = set(db["service"].distinct("technicianId", {"status": {"$in": list(ACTIVE_STATUSES)}}))
    return [public_profile(t) for t in db["technician"].find(filt) if t["_id"] not in busy]
