"""
Ledger Records Module

Persistent records of the ledger: customers, loans and payments. Records are
created once and never updated; derived figures such as balances are not
stored here.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict
from enum import Enum

from .storage import StorageRecord


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "ACTIVE"


@dataclass
class Customer(StorageRecord):
    """Borrower that loans are issued to"""
    name: str


@dataclass
class Loan(StorageRecord):
    """Loan terms together with the repayment figures fixed at creation"""
    customer_id: str
    principal: Decimal
    annual_rate: Decimal        # percent, e.g. 10 for 10%
    term_years: int
    total_payable: Decimal
    installment: Decimal
    status: LoanStatus = LoanStatus.ACTIVE

    @property
    def interest(self) -> Decimal:
        """Total simple interest over the full term"""
        return self.total_payable - self.principal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        data = dict(data)
        for key in ('principal', 'annual_rate', 'total_payable', 'installment'):
            data[key] = Decimal(data[key])
        data['term_years'] = int(data['term_years'])
        data['status'] = LoanStatus(data.get('status', LoanStatus.ACTIVE.value))
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)


@dataclass
class Payment(StorageRecord):
    """Single payment made against a loan"""
    loan_id: str
    amount: Decimal
    payment_type: str

    @property
    def paid_at(self) -> datetime:
        return self.created_at

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        data = dict(data)
        data['amount'] = Decimal(data['amount'])
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)
