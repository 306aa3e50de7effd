"""
Loan Ledger Module

Handles loan creation, payment recording, per-loan ledger views and the
account overview across all loans of a customer.

Balances are never stored. Every read re-sums the payments recorded for the
loan, so the figures returned always reflect the full payment history.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, List
import logging
import uuid

from . import calculator
from .errors import NotFoundError
from .gateway import LedgerGateway
from .models import Loan, LoanStatus, Payment
from .validation import require_positive_amount, require_text


logger = logging.getLogger(__name__)


@dataclass
class PaymentReceipt:
    """Outcome of a recorded payment"""
    payment_id: str
    balance: Decimal
    emis_left: int
    message: str = "Payment Successful"
    success: bool = True


@dataclass
class LedgerView:
    """Point-in-time snapshot of one loan and its payments"""
    loan: Loan
    paid_so_far: Decimal
    balance: Decimal
    emis_left: int
    payments: List[Payment] = field(default_factory=list)


@dataclass
class LoanSummary:
    """Per-loan figures shown in an account overview"""
    loan_id: str
    principal: Decimal
    total_payable: Decimal
    interest: Decimal
    installment: Decimal
    amount_paid: Decimal
    emis_left: int


@dataclass
class AccountOverview:
    """All loans of one customer"""
    customer_id: str
    loans: List[LoanSummary] = field(default_factory=list)

    @property
    def total_loans(self) -> int:
        return len(self.loans)


class LoanLedger:
    """
    Creates loans and records payments against them
    """

    def __init__(self, gateway: LedgerGateway):
        self.gateway = gateway

    def create_loan(
        self,
        customer_id: Any,
        principal: Any,
        term_years: Any,
        annual_rate: Any
    ) -> Loan:
        """
        Create a new loan

        Args:
            customer_id: Borrower customer ID
            principal: Amount lent
            term_years: Loan term in whole years
            annual_rate: Annual simple interest rate in percent

        Returns:
            Created Loan with total payable and installment fixed

        Raises:
            ValidationError: If any field is missing or out of range
            StorageError: If the loan could not be persisted
        """
        customer_id = require_text(customer_id, "customer_id")
        quote = calculator.compute(principal, term_years, annual_rate)

        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            customer_id=customer_id,
            principal=quote.principal,
            annual_rate=quote.annual_rate,
            term_years=quote.term_years,
            total_payable=quote.total_payable,
            installment=quote.installment,
            status=LoanStatus.ACTIVE
        )

        self.gateway.insert_loan(loan)

        logger.info(
            f"Loan {loan.id} created for customer {customer_id}: "
            f"total payable {loan.total_payable}, installment {loan.installment}"
        )
        return loan

    def get_loan(self, loan_id: str) -> Loan:
        """Get loan by ID or raise NotFoundError"""
        loan = self.gateway.get_loan_by_id(loan_id)
        if not loan:
            raise NotFoundError("loan", loan_id)
        return loan

    def record_payment(self, loan_id: str, amount: Any, payment_type: Any) -> PaymentReceipt:
        """
        Record a payment and return the resulting balance

        Overpayment is accepted; the balance then goes negative and no
        installments are left.

        Raises:
            ValidationError: If amount or payment type is missing or invalid
            NotFoundError: If the loan does not exist
            StorageError: If the payment could not be persisted
        """
        amount = require_positive_amount(amount, "amount")
        payment_type = require_text(payment_type, "payment_type")

        loan = self.get_loan(loan_id)

        payment = Payment(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            loan_id=loan.id,
            amount=amount,
            payment_type=payment_type
        )

        with self.gateway.loan_lock(loan.id):
            self.gateway.insert_payment(payment)
            paid_so_far = self.gateway.sum_payment_amounts_by_loan_id(loan.id)

        balance = loan.total_payable - paid_so_far
        receipt = PaymentReceipt(
            payment_id=payment.id,
            balance=balance,
            emis_left=calculator.emis_left(balance, loan.installment)
        )

        logger.info(
            f"Payment {payment.id} of {amount} recorded on loan {loan.id}: "
            f"balance {balance}, {receipt.emis_left} EMIs left"
        )
        return receipt

    def get_ledger(self, loan_id: str) -> LedgerView:
        """Loan snapshot with its payments and derived balance"""
        loan = self.get_loan(loan_id)
        payments = self.gateway.get_payments_by_loan_id(loan.id)

        paid_so_far = sum((p.amount for p in payments), Decimal('0'))
        balance = loan.total_payable - paid_so_far

        return LedgerView(
            loan=loan,
            paid_so_far=paid_so_far,
            balance=balance,
            emis_left=calculator.emis_left(balance, loan.installment),
            payments=payments
        )

    def get_overview(self, customer_id: str) -> AccountOverview:
        """
        Summarize every loan of a customer

        Raises:
            NotFoundError: If the customer has no loans
        """
        loans = self.gateway.get_loans_by_customer_id(customer_id)
        if not loans:
            raise NotFoundError("loans", customer_id,
                                message=f"No loans found for customer '{customer_id}'")

        return AccountOverview(
            customer_id=customer_id,
            loans=[self._summarize(loan) for loan in loans]
        )

    def _summarize(self, loan: Loan) -> LoanSummary:
        amount_paid = self.gateway.sum_payment_amounts_by_loan_id(loan.id)
        return LoanSummary(
            loan_id=loan.id,
            principal=loan.principal,
            total_payable=loan.total_payable,
            interest=loan.interest,
            installment=loan.installment,
            amount_paid=amount_paid,
            emis_left=calculator.emis_left(loan.total_payable - amount_paid, loan.installment)
        )
