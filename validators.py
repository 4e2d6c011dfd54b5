"""
Request bodies for the fleet maintenance API.

Presence of the fields each operation needs is checked by the engines, so
that the business error envelope applies; the format rules below fail as
request validation errors (HTTP 400 with an `errors` array).
"""
import re
from datetime import date
from typing import Annotated, List, Optional, Union

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from schemas import ASSIGNMENT_STATUSES, SERVICE_TYPES, VALID_BRANDS, VALID_TYPES, WEEKDAYS

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 ]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)(?=.*[@$!%*#?&])")
FLEET_EMAIL_DOMAIN = "@fleet.com"
MIN_VEHICLE_YEAR = 1990


def _check_service_type(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in SERVICE_TYPES:
        raise ValueError('Invalid serviceType. Must be "Oil Change", "Brake Repair", or "Battery Test"')
    return value


ServiceTypeName = Annotated[Optional[str], AfterValidator(_check_service_type)]


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# ---------------------------
# Auth & registration
# ---------------------------

class LoginRequest(_Request):
    email: EmailStr
    password: str


class TechnicianRegisterRequest(_Request):
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")
    skills: Optional[Union[List[str], str]] = Field(None, validation_alias=AliasChoices("skills", "skill"))
    availability: Optional[Union[List[str], str]] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name(cls, v):
        if v and not NAME_PATTERN.match(v):
            raise ValueError("Name can only contain letters, numbers, and spaces")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if v is None:
            return v
        v = v.lower()
        if not v.endswith(FLEET_EMAIL_DOMAIN):
            raise ValueError("Email must be a @fleet.com address")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if v is None:
            return v
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not PASSWORD_PATTERN.match(v):
            raise ValueError("Password must contain at least one letter, one number and one special character")
        return v

    @field_validator("confirm_password")
    @classmethod
    def check_confirmation(cls, v, info):
        if v is not None and v != info.data.get("password"):
            raise ValueError("Password confirmation does not match password")
        return v

    @field_validator("skills")
    @classmethod
    def check_skills(cls, v):
        if v is None:
            return v
        skills = [v] if isinstance(v, str) else v
        skills = [s.strip() for s in skills]
        if not skills or any(s not in SERVICE_TYPES for s in skills):
            raise ValueError(f"Invalid skill. Must be an array of: {', '.join(SERVICE_TYPES)}")
        return skills

    @field_validator("availability")
    @classmethod
    def check_availability(cls, v):
        if v is None:
            return v
        days = [v] if isinstance(v, str) else v
        days = [d.strip().lower() for d in days]
        if not days or any(d not in WEEKDAYS for d in days):
            raise ValueError(f"Invalid day. Must be an array of: {', '.join(WEEKDAYS)}")
        return days


# ---------------------------
# Vehicles & odometer
# ---------------------------

class VehicleCreateRequest(_Request):
    type: str
    make: str
    model: str
    year: int
    vin: str = Field(..., alias="VIN", min_length=1)
    last_service_date: date = Field(..., validation_alias=AliasChoices("LastServiceDate", "lastServiceDate"))

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        v = v[:1].upper() + v[1:].lower()
        if v not in VALID_TYPES:
            raise ValueError('Invalid vehicle type. Must be "Car" or "Truck".')
        return v

    @field_validator("make")
    @classmethod
    def check_make(cls, v):
        if v not in VALID_BRANDS:
            raise ValueError("Unsupported vehicle brand")
        return v

    @field_validator("year")
    @classmethod
    def check_year(cls, v):
        this_year = date.today().year
        if not MIN_VEHICLE_YEAR <= v <= this_year:
            raise ValueError(f"Year must be a valid integer between {MIN_VEHICLE_YEAR} and {this_year}")
        return v

    @field_validator("last_service_date")
    @classmethod
    def check_last_service_date(cls, v):
        if v > date.today():
            raise ValueError("Last Service Date cannot be in the future")
        return v


class OdometerRequest(_Request):
    mileage: int = Field(..., gt=0)
    service_type: ServiceTypeName = Field(None, alias="serviceType")


# ---------------------------
# Scheduling & assignments
# ---------------------------

class ScheduleRequest(_Request):
    vehicle_vin: Optional[str] = Field(None, alias="vehicleVIN")
    vehicle_id: Optional[str] = Field(None, alias="vehicleId")
    service_type: ServiceTypeName = Field(None, alias="serviceType")
    description: Optional[str] = None
    technician_id: Optional[str] = Field(None, alias="technicianId")
    due_service_date: Optional[date] = Field(None, alias="dueServiceDate")

    @field_validator("due_service_date")
    @classmethod
    def check_due_date(cls, v):
        if v is not None and v < date.today():
            raise ValueError("Due Service Date must be today or in the future")
        return v


class AssignmentCreateRequest(_Request):
    service_id: Optional[str] = Field(None, alias="serviceId")


class StatusUpdateRequest(_Request):
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in ASSIGNMENT_STATUSES:
            raise ValueError("Status must be one of: Assigned, Work In Progress, Completed.")
        return v


# ---------------------------
# History
# ---------------------------

class PaymentRequest(_Request):
    service_id: Optional[str] = Field(None, alias="serviceId")
    payment_status: Optional[str] = Field(None, alias="paymentStatus")
    cost: Optional[float] = None
