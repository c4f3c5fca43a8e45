from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.application.customers import CustomerDirectory
from app.application.history import EnrichmentJoin
from app.infrastructure.audit import AuditPublisher
from app.web.dependencies import get_audit_publisher, get_db_session
from app.web.schemas import (
    CustomerCheckOut,
    CustomerCheckRequest,
    CustomerCreateRequest,
    CustomerHistoryOut,
    CustomerOut,
    Envelope,
    RosterEntryOut,
)

router = APIRouter(prefix="/api", tags=["customers"])


@router.post("/customers", response_model=Envelope[CustomerOut])
def create_customer(
    payload: CustomerCreateRequest,
    db: Session = Depends(get_db_session),
    audit: AuditPublisher = Depends(get_audit_publisher),
) -> Envelope[CustomerOut]:
    customer = CustomerDirectory(db, audit).create(
        customer_name=payload.customer_name,
        customer_id=payload.customer_id,
        nic=payload.nic,
        contact_number=payload.contact_number,
        email=payload.email,
        address=payload.address,
        created_by=payload.created_by,
    )
    return Envelope(message="Customer created", data=CustomerOut.model_validate(customer))


@router.get("/customers", response_model=Envelope[list[RosterEntryOut]])
def list_customers(db: Session = Depends(get_db_session)) -> Envelope[list[RosterEntryOut]]:
    roster = CustomerDirectory(db).roster()
    return Envelope(
        message=f"Found {len(roster)} customers",
        data=[RosterEntryOut.model_validate(entry) for entry in roster],
    )


@router.post("/customers/check", response_model=Envelope[CustomerCheckOut])
def check_customer(
    payload: CustomerCheckRequest, db: Session = Depends(get_db_session)
) -> Envelope[CustomerCheckOut]:
    status, customer = CustomerDirectory(db).check(payload.customer_id, payload.nic)
    data = CustomerCheckOut(
        status=status,
        customer=CustomerOut.model_validate(customer) if customer is not None else None,
    )
    message = "Existing customer found" if customer is not None else "New customer"
    return Envelope(message=message, data=data)


@router.get("/customer/{customer_id}/history", response_model=Envelope[CustomerHistoryOut])
def customer_history(
    customer_id: str, db: Session = Depends(get_db_session)
) -> Envelope[CustomerHistoryOut]:
    history = EnrichmentJoin(db).history(customer_id)
    return Envelope(data=CustomerHistoryOut.from_history(history))
