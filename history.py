"""
History ledger and payment reconciliation.

Recording a payment writes three collections: a new history entry, the
service's payment sub-record and the vehicle's service log. Everything is
resolved before the first write; if a later write fails the earlier ones are
undone and the error is re-raised.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from database import create_document, get_documents, to_object_id
from errors import NotFoundError, ValidationError
from schemas import PAYMENT_STATUSES, History, Payment, ServiceDetail

logger = logging.getLogger(__name__)


def add_service_payment(db, service_id: Optional[str], payment_status: Optional[str],
                        cost: Optional[float] = None) -> Dict[str, Any]:
    if not service_id:
        raise ValidationError("serviceId is required")
    service_oid = to_object_id(service_id, "serviceId")
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError('paymentStatus must be either "Paid" or "Unpaid"')
    if cost is None:
        cost = 0
    if cost < 0:
        raise ValidationError("Cost cannot be negative")

    service = db["service"].find_one({"_id": service_oid})
    if not service:
        raise NotFoundError("Service not found")
    vehicle = db["vehicle"].find_one({"VIN": service.get("vehicleVIN")}, {"_id": 1})
    if not vehicle:
        raise NotFoundError("Vehicle not found")

    now = datetime.now(timezone.utc)
    history_id = create_document(db, "history", History(service_id=service_oid, payment_status=payment_status, cost=cost))
    history_oid = to_object_id(history_id)
    payment = Payment(payment_status=payment_status, cost=cost, history_id=history_oid)
    detail = ServiceDetail(
        service_id=service_oid,
        service_type=service.get("serviceType"),
        description=service.get("description"),
        technician_name=service.get("technicianName"),
        payment_status=payment_status,
        cost=cost,
        date=now,
    )

    try:
        db["service"].update_one(
            {"_id": service_oid},
            {"$set": {"payment": payment.model_dump(by_alias=True), "updated_at": now}},
        )
        try:
            db["vehicle"].update_one(
                {"_id": vehicle["_id"]},
                {
                    "$set": {"lastServiceDate": now, "updated_at": now},
                    "$push": {"serviceDetails": detail.model_dump(by_alias=True)},
                },
            )
        except PyMongoError:
            db["service"].update_one({"_id": service_oid}, {"$set": {"payment": service.get("payment")}})
            raise
    except PyMongoError:
        logger.exception("Payment for service %s failed, rolling back history %s", service_oid, history_id)
        db["history"].delete_one({"_id": history_oid})
        raise

    logger.info("Recorded %s payment of %s for service %s (history %s)", payment_status, cost, service_oid, history_id)
    return {"message": "Payment status updated", "serviceId": str(service_oid), "historyId": history_id}


def list_all_histories(db) -> List[Dict[str, Any]]:
    return get_documents(db, "history")
