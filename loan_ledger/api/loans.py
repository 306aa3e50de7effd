"""
Loan endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import LedgerSystem, get_ledger_system
from .schemas import CreateLoanRequest, PaymentRequest, format_amount, loan_to_dict, payment_to_dict


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_loan(
    request: CreateLoanRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new loan"""
    loan = system.ledger.create_loan(
        customer_id=request.customer_id,
        principal=request.loan_amount,
        term_years=request.duration_years,
        annual_rate=request.interest_rate
    )

    return {
        "loan_id": loan.id,
        "customer_id": loan.customer_id,
        "total_amount": format_amount(loan.total_payable),
        "monthly_emi": format_amount(loan.installment)
    }


@router.post("/{loan_id}/payments")
def make_payment(
    loan_id: str,
    request: PaymentRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Record a payment against a loan"""
    receipt = system.ledger.record_payment(
        loan_id=loan_id,
        amount=request.amount,
        payment_type=request.payment_type
    )

    return {
        "payment_id": receipt.payment_id,
        "message": receipt.message,
        "remaining_balance": format_amount(receipt.balance),
        "emis_left": receipt.emis_left
    }


@router.get("/{loan_id}/ledger")
def get_ledger(
    loan_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get loan details with all payments and the derived balance"""
    view = system.ledger.get_ledger(loan_id)

    result = loan_to_dict(view.loan)
    result.update({
        "paid": format_amount(view.paid_so_far),
        "balance": format_amount(view.balance),
        "emis_left": view.emis_left,
        "payments": [payment_to_dict(payment) for payment in view.payments]
    })
    return result
