"""
Customer endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import LedgerSystem, get_ledger_system
from .schemas import CreateCustomerRequest, format_amount


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(
    request: CreateCustomerRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new customer"""
    customer = system.customer_manager.create_customer(request.name)
    return {
        "customer_id": customer.id,
        "name": customer.name,
        "created_at": customer.created_at.isoformat()
    }


@router.get("/{customer_id}")
def get_customer(
    customer_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get customer details"""
    customer = system.customer_manager.get_customer(customer_id)
    return {
        "customer_id": customer.id,
        "name": customer.name,
        "created_at": customer.created_at.isoformat()
    }


@router.get("/{customer_id}/overview")
def get_overview(
    customer_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get every loan of a customer with amounts paid and EMIs left"""
    overview = system.ledger.get_overview(customer_id)

    loans = []
    for summary in overview.loans:
        loans.append({
            "loan_id": summary.loan_id,
            "principal": format_amount(summary.principal),
            "total_amount": format_amount(summary.total_payable),
            "interest": format_amount(summary.interest),
            "emi": format_amount(summary.installment),
            "amount_paid": format_amount(summary.amount_paid),
            "emis_left": summary.emis_left
        })

    return {
        "customer_id": overview.customer_id,
        "total_loans": overview.total_loans,
        "loans": loans
    }
