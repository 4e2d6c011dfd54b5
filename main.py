import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import assignments
import database
import history
import odometer
import scheduling
import technicians
import vehicles
from database import ensure_indexes, get_db, serialize
from errors import FieldErrors, FleetError
from schemas import COLLECTION_MODELS
from security import Actor, authenticate, check_jwt_secret, create_access_token, get_current_actor, require_admin, revoke_token, seed_admin
from validators import (
    AssignmentCreateRequest,
    LoginRequest,
    OdometerRequest,
    PaymentRequest,
    ScheduleRequest,
    StatusUpdateRequest,
    TechnicianRegisterRequest,
    VehicleCreateRequest,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_jwt_secret()
    if database.db is not None:
        ensure_indexes(database.db)
        seed_admin(database.db, os.getenv("ADMIN_EMAIL"), os.getenv("ADMIN_PASSWORD"))
    else:
        logger.warning("DATABASE_URL/DATABASE_NAME not set, running without a database")
    yield


app = FastAPI(title="Fleet Maintenance API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------
# Error envelopes
# ---------------------------

def error_response(exc: FleetError, key: str = "message") -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={key: exc.message})


@app.exception_handler(FleetError)
async def fleet_error_handler(request: Request, exc: FleetError):
    return error_response(exc)


@app.exception_handler(FieldErrors)
async def field_errors_handler(request: Request, exc: FieldErrors):
    return JSONResponse(status_code=400, content={"errors": exc.errors})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        param = str(loc[-1]) if len(loc) > 1 else (str(loc[0]) if loc else "")
        ctx_error = (err.get("ctx") or {}).get("error")
        if err.get("type") == "missing":
            msg = f"{param} is required"
        elif ctx_error is not None:
            msg = str(ctx_error)
        else:
            msg = f"{param}: {err.get('msg')}"
        errors.append({"msg": msg, "param": param, "location": str(loc[0]) if loc else "body"})
    return JSONResponse(status_code=400, content=jsonable_encoder({"errors": errors}))


# ---------------------------
# Health & Utility
# ---------------------------
@app.get("/")
def read_root():
    return {"message": "Fleet Maintenance API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_name": None,
        "collections": [],
    }
    if database.db is None:
        return response
    response["database_name"] = database.db.name
    try:
        response["collections"] = database.db.list_collection_names()[:10]
        response["database"] = "Connected & Working"
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = f"Connected but Error: {str(e)[:50]}"
    return response


# ---------------------------
# Authentication & registration
# ---------------------------
@app.post("/api/auth/login")
def login(payload: LoginRequest, db=Depends(get_db)):
    cred = authenticate(db, payload.email, payload.password)
    if not cred:
        logger.warning("Failed login for %s", payload.email.lower())
        return JSONResponse(status_code=400, content={"error": "Invalid credentials"})
    token = create_access_token(str(cred["_id"]), cred["role"])
    return {"message": "Login successful", "token": token, "role": cred["role"]}


@app.post("/api/auth/logout")
def logout(actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    revoke_token(db, actor, expires_at=actor.exp)
    return {"message": "Logged out"}


@app.post("/api/register")
def register(payload: TechnicianRegisterRequest, db=Depends(get_db)):
    return serialize(technicians.register_technician(db, payload))


# ---------------------------
# Vehicles & odometer
# ---------------------------
@app.post("/api/vehicles")
def create_vehicle(payload: VehicleCreateRequest, actor: Actor = Depends(require_admin), db=Depends(get_db)):
    return serialize(vehicles.register_vehicle(db, payload))


@app.get("/api/vehicles")
def list_vehicles(actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(vehicles.list_vehicles(db))


@app.get("/api/vehicles/{vin}")
def get_vehicle(vin: str, actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(vehicles.get_vehicle(db, vin))


@app.post("/api/vehicles/{vin}/odometer")
def record_odometer(vin: str, payload: OdometerRequest, actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(odometer.record_odometer_reading(db, vin, payload.mileage, payload.service_type))


@app.get("/api/vehicles/{vin}/odometer")
def get_odometer(vin: str, actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(odometer.get_odometer_readings(db, vin))


# ---------------------------
# Scheduling
# ---------------------------
@app.post("/api/scheduling/schedule")
def schedule_service(payload: ScheduleRequest, actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    try:
        return scheduling.schedule_service(db, payload)
    except FleetError as exc:
        return error_response(exc, key="error")


@app.get("/api/scheduling/technicians")
def eligible_technicians(service_type: Optional[str] = Query(None, alias="serviceType"),
                         day: Optional[str] = None,
                         actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(technicians.list_eligible_technicians(db, service_type, day))


# ---------------------------
# Technician assignments
# ---------------------------
@app.post("/api/technician/assignments")
def create_assignment(payload: AssignmentCreateRequest, actor: Actor = Depends(require_admin), db=Depends(get_db)):
    return assignments.create_assignment(db, payload.service_id)


@app.patch("/api/technician/assignments/{service_id}/status")
def update_assignment_status(service_id: str, payload: StatusUpdateRequest,
                             actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return assignments.update_assignment_status(db, service_id, actor, payload.status)


@app.get("/api/technician/assignments")
def list_assignments(actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(assignments.list_assignments(db, actor))


@app.get("/api/technician/unassigned-services")
def list_unassigned_services(actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(assignments.list_unassigned_with_technician(db))


# ---------------------------
# History
# ---------------------------
@app.post("/api/history/addService")
def add_service(payload: PaymentRequest, actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return history.add_service_payment(db, payload.service_id, payload.payment_status, payload.cost)


@app.get("/api/history/allHistories")
def all_histories(actor: Actor = Depends(get_current_actor), db=Depends(get_db)):
    return serialize(history.list_all_histories(db))


# Optional: expose schemas for tooling
@app.get("/schema")
def get_schema_models():
    return {
        "models": [
            {"name": m.__name__, "collection": m.__name__.lower(),
             "fields": [f.alias or name for name, f in m.model_fields.items()]}
            for m in COLLECTION_MODELS
        ]
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
