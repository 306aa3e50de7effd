"""
Ledger Storage Gateway

Typed, append-only access to customers, loans and payments on top of a
storage backend. This is the only way the ledger touches persistence.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, List, Optional
import threading

from .models import Customer, Loan, Payment
from .storage import StorageInterface


class _LoanLock:
    """Lock for one loan plus the number of threads holding or awaiting it"""

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class LedgerGateway:
    """Customer, loan and payment persistence"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

        self.customers_table = "customers"
        self.loans_table = "loans"
        self.payments_table = "payments"

        self._loan_locks: Dict[str, _LoanLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def loan_lock(self, loan_id: str) -> Iterator[None]:
        """Serialize payment writes and the balance re-read for one loan"""
        with self._locks_guard:
            entry = self._loan_locks.get(loan_id)
            if entry is None:
                entry = self._loan_locks[loan_id] = _LoanLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.holders -= 1
                # drop idle locks so the table only holds loans in use
                if entry.holders == 0:
                    del self._loan_locks[loan_id]

    # Customers

    def insert_customer(self, customer: Customer) -> None:
        self.storage.insert(self.customers_table, customer.id, customer.to_dict())

    def get_customer_by_id(self, customer_id: str) -> Optional[Customer]:
        data = self.storage.load(self.customers_table, customer_id)
        if data:
            return Customer.from_dict(data)
        return None

    # Loans

    def insert_loan(self, loan: Loan) -> None:
        self.storage.insert(self.loans_table, loan.id, loan.to_dict())

    def get_loan_by_id(self, loan_id: str) -> Optional[Loan]:
        data = self.storage.load(self.loans_table, loan_id)
        if data:
            return Loan.from_dict(data)
        return None

    def get_loans_by_customer_id(self, customer_id: str) -> List[Loan]:
        """All loans of a customer in the order they were created"""
        return [
            Loan.from_dict(data)
            for data in self.storage.find(self.loans_table, {"customer_id": customer_id})
        ]

    # Payments

    def insert_payment(self, payment: Payment) -> None:
        self.storage.insert(self.payments_table, payment.id, payment.to_dict())

    def get_payments_by_loan_id(self, loan_id: str) -> List[Payment]:
        """All payments of a loan in the order they were recorded"""
        return [
            Payment.from_dict(data)
            for data in self.storage.find(self.payments_table, {"loan_id": loan_id})
        ]

    def sum_payment_amounts_by_loan_id(self, loan_id: str) -> Decimal:
        return sum(
            (payment.amount for payment in self.get_payments_by_loan_id(loan_id)),
            Decimal('0'),
        )
