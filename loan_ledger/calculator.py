"""
Loan Calculator Module

Flat simple-interest repayment figures. The total payable and the fixed
monthly installment are computed once when a loan is created; the number of
installments left is derived from the outstanding balance on every read.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, localcontext
from dataclasses import dataclass
from typing import Any

from .validation import (
    require_positive_amount, require_non_negative_amount, require_positive_int
)


MONTHS_PER_YEAR = 12
MAX_TERM_YEARS = 100

# Division noise below this is ignored before taking the ceiling
RATIO_PRECISION = Decimal('1e-12')


@dataclass(frozen=True)
class LoanQuote:
    """Repayment figures for a loan"""
    principal: Decimal
    term_years: int
    annual_rate: Decimal
    total_payable: Decimal
    installment: Decimal

    @property
    def interest(self) -> Decimal:
        return self.total_payable - self.principal


def compute(principal: Any, term_years: Any, annual_rate: Any) -> LoanQuote:
    """
    Calculate total payable and monthly installment using simple interest.

    interest = principal * term_years * (annual_rate / 100)
    total_payable = principal + interest
    installment = total_payable / (term_years * 12)

    Args:
        principal: Amount lent, greater than zero
        term_years: Loan term in whole years, 1 to MAX_TERM_YEARS
        annual_rate: Annual interest rate in percent, zero or more

    Returns:
        LoanQuote with total payable and installment

    Raises:
        ValidationError: If any input is out of range
    """
    principal = require_positive_amount(principal, "principal")
    term_years = require_positive_int(term_years, "term_years", maximum=MAX_TERM_YEARS)
    annual_rate = require_non_negative_amount(annual_rate, "annual_rate")

    interest = principal * term_years * (annual_rate / Decimal('100'))
    total_payable = principal + interest
    installment = total_payable / (term_years * MONTHS_PER_YEAR)

    return LoanQuote(
        principal=principal,
        term_years=term_years,
        annual_rate=annual_rate,
        total_payable=total_payable,
        installment=installment,
    )


def emis_left(balance: Decimal, installment: Decimal) -> int:
    """
    Number of further installments needed to clear the balance.

    Never negative: a settled or overpaid loan has zero installments left.
    """
    if balance <= 0:
        return 0
    ratio = balance / installment
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the fraction
        ctx.prec = max(ctx.prec, ratio.adjusted() + 1 - RATIO_PRECISION.as_tuple().exponent)
        ratio = ratio.quantize(RATIO_PRECISION, rounding=ROUND_HALF_UP)
        return int(ratio.to_integral_value(rounding=ROUND_CEILING))
