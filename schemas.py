"""
Database Schemas for the Fleet Maintenance API

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercase of the class name (e.g., Vehicle -> "vehicle"). Stored field names
follow the camelCase used on the wire (vehicleVIN, technicianId, ...).
"""
from typing import List, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, EmailStr
from datetime import datetime

SERVICE_TYPES = ("Oil Change", "Brake Repair", "Battery Test")

UNASSIGNED = "Unassigned"
ASSIGNED = "Assigned"
WORK_IN_PROGRESS = "Work In Progress"
COMPLETED = "Completed"
SERVICE_STATUSES = (UNASSIGNED, ASSIGNED, WORK_IN_PROGRESS, COMPLETED)
# A technician holding a service in one of these is unavailable for new work.
ACTIVE_STATUSES = (ASSIGNED, WORK_IN_PROGRESS)
# Statuses a technician may set through the assignment status endpoint.
ASSIGNMENT_STATUSES = (ASSIGNED, WORK_IN_PROGRESS, COMPLETED)

PAID = "Paid"
UNPAID = "Unpaid"
PAYMENT_STATUSES = (PAID, UNPAID)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

VALID_BRANDS = (
    "Toyota", "Honda", "Ford", "Chevrolet", "BMW", "Mercedes-Benz", "Audi", "Hyundai",
    "Kia", "Volkswagen", "Nissan", "Tata", "Mahindra", "Suzuki", "Renault",
)
VALID_TYPES = ("Car", "Truck")

ROLE_ADMIN = "admin"
ROLE_TECHNICIAN = "technician"


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


class PasswordHash(BaseModel):
    salt: str
    hash: str


class Credential(_Document):
    """
    Login identity for admins and technicians.
    Collection: "credential"
    """
    email: EmailStr = Field(..., description="Unique, lower-cased email")
    password: PasswordHash
    role: str = Field(ROLE_TECHNICIAN, description="admin | technician")


class Technician(_Document):
    """
    Technician profile, linked to its credential.
    Collection: "technician"
    """
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: EmailStr = Field(..., description="Unique, lower-cased email")
    credential: Optional[Any] = Field(None, description="Credential ObjectId")
    skills: List[str] = Field(default_factory=list, description="Subset of SERVICE_TYPES")
    availability: List[str] = Field(default_factory=list, description="Lowercase weekday names")


class OdometerReading(_Document):
    reading_id: str = Field(..., alias="readingId")
    mileage: int = Field(..., gt=0)
    date: datetime


class ServiceDetail(_Document):
    """Summary appended to a vehicle when a service payment is recorded."""
    service_id: Optional[Any] = Field(None, alias="serviceId")
    service_type: str = Field(..., alias="serviceType")
    description: Optional[str] = None
    technician_name: Optional[str] = Field(None, alias="technicianName")
    payment_status: str = Field(..., alias="paymentStatus")
    cost: float = Field(0, ge=0)
    date: datetime


class Vehicle(_Document):
    """
    Fleet vehicle, identified by VIN.
    Collection: "vehicle"
    """
    vin: str = Field(..., alias="VIN")
    type: str = Field(..., description="Car | Truck")
    make: str
    model: str
    year: int
    last_service_date: Optional[datetime] = Field(None, alias="lastServiceDate")
    odometer_readings: List[OdometerReading] = Field(default_factory=list, alias="odometerReadings")
    service_details: List[ServiceDetail] = Field(default_factory=list, alias="serviceDetails")


class Payment(_Document):
    payment_status: str = Field(UNPAID, alias="paymentStatus", description="Paid | Unpaid")
    cost: float = Field(0, ge=0)
    history_id: Optional[Any] = Field(None, alias="historyId")


class Service(_Document):
    """
    Maintenance work order for one vehicle.
    Collection: "service"
    """
    vehicle_vin: str = Field(..., alias="vehicleVIN")
    service_type: str = Field(..., alias="serviceType")
    status: str = Field(UNASSIGNED, description="Unassigned | Assigned | Work In Progress | Completed")
    technician_id: Optional[Any] = Field(None, alias="technicianId")
    technician_name: Optional[str] = Field(None, alias="technicianName")
    description: Optional[str] = None
    due_service_date: Optional[datetime] = Field(None, alias="dueServiceDate")
    assignment_date: Optional[datetime] = Field(None, alias="assignmentDate")
    payment: Payment = Field(default_factory=Payment)


class History(_Document):
    """
    Append-only payment event for a service.
    Collection: "history"
    """
    service_id: Any = Field(..., alias="serviceId")
    payment_status: str = Field(..., alias="paymentStatus")
    cost: float = Field(0, ge=0)


class RevokedToken(_Document):
    """
    JWT ids invalidated by logout.
    Collection: "revokedtoken"
    """
    jti: str
    expires_at: Optional[datetime] = None


COLLECTION_MODELS = (Credential, Technician, Vehicle, Service, History, RevokedToken)
