"""Minimal customer records used to tell new customers from existing ones."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from ..domain.schemas import CustomerInput, CustomerLookupInput, parse_or_raise
from ..infrastructure.audit import AuditEvent, AuditPublisher
from ..infrastructure.exceptions import ConflictError, CustomerNotFoundError, IntegrityError
from ..infrastructure.logging import log_operation
from ..infrastructure.models import CustomerORM, utcnow
from ..infrastructure.repositories import AssessmentRepo, CustomerRepo
from .base import Service, display_actor

DUPLICATE_CUSTOMER = "Customer with this ID or NIC already exists"


@dataclass(slots=True)
class RosterEntry:
    customer_id: str
    customer_name: str
    nic: str
    last_assessment_date: datetime


class CustomerDirectory(Service):
    def __init__(self, session: Session, audit: AuditPublisher | None = None):
        super().__init__(session, audit)
        self.repo = CustomerRepo(session)

    def get(self, customer_id: str) -> CustomerORM:
        customer = self.repo.get_live(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        return customer

    def roster(self) -> list[RosterEntry]:
        """Customers with at least one visible assessment, by customer ID."""
        entries: list[RosterEntry] = []
        for customer_id, name, nic, assessed_at in AssessmentRepo(self.s).customer_rows():
            if entries and entries[-1].customer_id == customer_id:
                continue
            entries.append(RosterEntry(customer_id, name, nic, assessed_at))
        return entries

    def check(self, customer_id: str | None = None, nic: str | None = None):
        """
        Classify a customer as ``existing`` (with the record) or ``new`` (None).

        Either identifier may be given; when both are, a match on either counts.
        """
        data = parse_or_raise(CustomerLookupInput, {"customer_id": customer_id, "nic": nic})
        customer = self.repo.find(customer_id=data.customer_id, nic=data.nic)
        if customer is None:
            return "new", None
        return "existing", customer

    @log_operation("create_customer")
    def create(
        self,
        customer_name: str | None,
        customer_id: str | None,
        nic: str | None,
        contact_number: str | None = None,
        email: str | None = None,
        address: str | None = None,
        created_by: str | None = None,
    ) -> CustomerORM:
        data = parse_or_raise(
            CustomerInput,
            {
                "customer_name": customer_name,
                "customer_id": customer_id,
                "nic": nic,
                "contact_number": contact_number,
                "email": email,
                "address": address,
            },
        )
        now = utcnow()
        try:
            with self.transaction("create customer"):
                if self.repo.find(customer_id=data.customer_id, nic=data.nic) is not None:
                    raise ConflictError(DUPLICATE_CUSTOMER)
                customer = self.repo.add(
                    CustomerORM(
                        customer_name=data.customer_name,
                        customer_id=data.customer_id,
                        nic=data.nic,
                        contact_number=data.contact_number,
                        email=data.email,
                        address=data.address,
                        is_deleted=False,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError as e:
            # a concurrent insert can still trip the unique indexes
            if e.constraint == "unique":
                raise ConflictError(DUPLICATE_CUSTOMER) from e
            raise

        self.publish(
            AuditEvent(
                username=display_actor(created_by),
                description=f'Created customer "{customer.customer_name}" ({customer.customer_id})',
                action="customer_created",
                metadata={"customerId": customer.customer_id},
            )
        )
        return customer
