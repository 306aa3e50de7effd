"""
Customer Management Module

Registers borrowers that loans are issued to.
"""

from datetime import datetime, timezone
from typing import Any
import logging
import uuid

from .errors import NotFoundError
from .gateway import LedgerGateway
from .models import Customer
from .validation import require_text


logger = logging.getLogger(__name__)


class CustomerManager:
    """Creates and looks up customers"""

    def __init__(self, gateway: LedgerGateway):
        self.gateway = gateway

    def create_customer(self, name: Any) -> Customer:
        """Create a customer with the given display name"""
        customer = Customer(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            name=require_text(name, "name")
        )
        self.gateway.insert_customer(customer)
        logger.info(f"Customer {customer.id} created")
        return customer

    def get_customer(self, customer_id: str) -> Customer:
        """Get customer by ID or raise NotFoundError"""
        customer = self.gateway.get_customer_by_id(customer_id)
        if not customer:
            raise NotFoundError("customer", customer_id)
        return customer
