"""
Pydantic schemas for API requests and response formatting

Request fields are deliberately loose: type and range checks belong to the
ledger, which reports them as validation errors naming the offending field.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict
from pydantic import BaseModel, Field

from ..models import Loan, Payment


CENT = Decimal('0.01')


def format_amount(amount: Decimal) -> str:
    """Decimal amount as a string rounded to cents"""
    return str(amount.quantize(CENT, rounding=ROUND_HALF_UP))


# Customer schemas
class CreateCustomerRequest(BaseModel):
    name: Any = Field(None, description="Customer display name")


# Loan schemas
class CreateLoanRequest(BaseModel):
    customer_id: Any = None
    loan_amount: Any = Field(None, description="Principal as number or decimal string")
    duration_years: Any = Field(None, description="Loan term in whole years")
    interest_rate: Any = Field(None, description="Annual simple interest rate in percent")


class PaymentRequest(BaseModel):
    amount: Any = Field(None, description="Payment amount as number or decimal string")
    payment_type: Any = Field(None, description="Payment method, e.g. EMI or LUMP_SUM")


def loan_to_dict(loan: Loan) -> Dict[str, Any]:
    return {
        "loan_id": loan.id,
        "customer_id": loan.customer_id,
        "principal_amount": format_amount(loan.principal),
        "total_amount": format_amount(loan.total_payable),
        "interest_rate": str(loan.annual_rate),
        "duration_years": loan.term_years,
        "monthly_emi": format_amount(loan.installment),
        "status": loan.status.value,
        "created_at": loan.created_at.isoformat(),
    }


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "payment_id": payment.id,
        "loan_id": payment.loan_id,
        "amount": format_amount(payment.amount),
        "payment_type": payment.payment_type,
        "payment_date": payment.paid_at.isoformat(),
    }
