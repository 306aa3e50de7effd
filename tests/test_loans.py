"""
Test suite for the loan ledger

Tests loan creation, payment recording, ledger views and account overviews,
including overpayment and the boundaries of input validation.
"""

import pytest
import threading
from decimal import Decimal

from loan_ledger.errors import NotFoundError, StorageError, ValidationError
from loan_ledger.gateway import LedgerGateway
from loan_ledger.loans import LoanLedger, LedgerView, AccountOverview
from loan_ledger.models import LoanStatus
from loan_ledger.storage import InMemoryStorage, SQLiteStorage


class FailingStorage(InMemoryStorage):
    """Storage whose writes always fail"""

    def insert(self, table, record_id, data):
        raise StorageError("disk full")


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def ledger(storage):
    return LoanLedger(LedgerGateway(storage))


@pytest.fixture
def reference_loan(ledger):
    """100000 over 5 years at 10%"""
    return ledger.create_loan("CUST001", 100000, 5, 10)


class TestCreateLoan:
    """Test loan creation"""

    def test_reference_loan(self, reference_loan, ledger):
        """Creation fixes total payable and installment"""
        assert reference_loan.customer_id == "CUST001"
        assert reference_loan.total_payable == Decimal('150000')
        assert reference_loan.installment == Decimal('2500')
        assert reference_loan.status == LoanStatus.ACTIVE
        assert reference_loan.term_years == 5

        stored = ledger.get_loan(reference_loan.id)
        assert stored == reference_loan

    def test_each_loan_gets_new_identity(self, ledger):
        first = ledger.create_loan("CUST001", 1000, 1, 5)
        second = ledger.create_loan("CUST001", 1000, 1, 5)
        assert first.id != second.id

    def test_creates_no_payments(self, reference_loan, storage):
        assert storage.count("payments") == 0
        assert storage.count("loans") == 1

    def test_zero_rate_loan_allowed(self, ledger):
        loan = ledger.create_loan("CUST001", "6000", 1, 0)
        assert loan.total_payable == Decimal('6000')
        assert loan.installment == Decimal('500')

    @pytest.mark.parametrize("kwargs,field", [
        ({"customer_id": None}, "customer_id"),
        ({"customer_id": ""}, "customer_id"),
        ({"principal": None}, "principal"),
        ({"principal": 0}, "principal"),
        ({"principal": -5}, "principal"),
        ({"term_years": 0}, "term_years"),
        ({"term_years": 1.5}, "term_years"),
        ({"annual_rate": None}, "annual_rate"),
        ({"annual_rate": "ten"}, "annual_rate"),
    ])
    def test_validation(self, ledger, storage, kwargs, field):
        """Invalid input is rejected before anything is stored"""
        params = {"customer_id": "CUST001", "principal": 1000, "term_years": 2, "annual_rate": 5}
        params.update(kwargs)

        with pytest.raises(ValidationError) as exc_info:
            ledger.create_loan(**params)

        assert exc_info.value.field == field
        assert storage.count("loans") == 0

    def test_storage_failure_surfaces(self):
        ledger = LoanLedger(LedgerGateway(FailingStorage()))
        with pytest.raises(StorageError, match="disk full"):
            ledger.create_loan("CUST001", 1000, 1, 5)


class TestRecordPayment:
    """Test payment recording"""

    def test_first_installment(self, ledger, reference_loan):
        """Paying one EMI leaves 147500 and 59 EMIs"""
        receipt = ledger.record_payment(reference_loan.id, 2500, "EMI")

        assert receipt.success
        assert receipt.message == "Payment Successful"
        assert receipt.balance == Decimal('147500')
        assert receipt.emis_left == 59
        assert receipt.payment_id

    def test_overpayment(self, ledger, reference_loan):
        """Overpaying drives the balance negative with zero EMIs left"""
        ledger.record_payment(reference_loan.id, 2500, "EMI")
        receipt = ledger.record_payment(reference_loan.id, 150000, "LUMP_SUM")

        assert receipt.balance == Decimal('-2500')
        assert receipt.emis_left == 0

        view = ledger.get_ledger(reference_loan.id)
        assert view.paid_so_far == Decimal('152500')
        assert view.emis_left == 0
        assert view.loan.status == LoanStatus.ACTIVE

    def test_balance_decreases_by_amount(self, ledger, reference_loan):
        """Every payment reduces the balance by exactly its amount"""
        before = ledger.get_ledger(reference_loan.id).balance
        receipt = ledger.record_payment(reference_loan.id, "1234.56", "UPI")

        assert before - receipt.balance == Decimal('1234.56')
        assert ledger.get_ledger(reference_loan.id).balance == receipt.balance

    def test_partial_payment_keeps_emi_count(self, ledger, reference_loan):
        """Paying less than an installment does not remove one"""
        receipt = ledger.record_payment(reference_loan.id, 100, "EMI")
        assert receipt.emis_left == 60

    def test_loan_record_not_mutated(self, ledger, reference_loan, storage):
        before = storage.load("loans", reference_loan.id)
        ledger.record_payment(reference_loan.id, 2500, "EMI")
        assert storage.load("loans", reference_loan.id) == before

    @pytest.mark.parametrize("amount,payment_type,field", [
        (0, "EMI", "amount"),
        (-10, "EMI", "amount"),
        (None, "EMI", "amount"),
        ("abc", "EMI", "amount"),
        (2500, None, "payment_type"),
        (2500, "", "payment_type"),
    ])
    def test_invalid_payment_not_persisted(self, ledger, reference_loan, storage,
                                           amount, payment_type, field):
        with pytest.raises(ValidationError) as exc_info:
            ledger.record_payment(reference_loan.id, amount, payment_type)

        assert exc_info.value.field == field
        assert storage.count("payments") == 0

    def test_validation_precedes_loan_lookup(self, ledger):
        """Bad input on an unknown loan is still a validation error"""
        with pytest.raises(ValidationError):
            ledger.record_payment("UNKNOWN", 0, "EMI")

    def test_unknown_loan(self, ledger, storage):
        with pytest.raises(NotFoundError) as exc_info:
            ledger.record_payment("UNKNOWN", 2500, "EMI")

        assert exc_info.value.entity == "loan"
        assert storage.count("payments") == 0

    def test_concurrent_payments_on_same_loan(self):
        """No payment is lost when many arrive at once"""
        with_sqlite = LoanLedger(LedgerGateway(SQLiteStorage(":memory:")))
        loan = with_sqlite.create_loan("CUST001", 100000, 5, 10)
        receipts = []

        def pay():
            receipts.append(with_sqlite.record_payment(loan.id, 100, "EMI"))

        threads = [threading.Thread(target=pay) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        view = with_sqlite.get_ledger(loan.id)
        assert len(view.payments) == 20
        assert view.paid_so_far == Decimal('2000')
        # each receipt saw its own payment and every earlier one
        assert sorted(r.balance for r in receipts) == [
            Decimal('150000') - Decimal('100') * n for n in range(20, 0, -1)
        ]


class TestLedgerView:
    """Test per-loan ledger"""

    def test_fresh_loan(self, ledger, reference_loan):
        view = ledger.get_ledger(reference_loan.id)

        assert isinstance(view, LedgerView)
        assert view.loan == reference_loan
        assert view.paid_so_far == Decimal('0')
        assert view.balance == Decimal('150000')
        assert view.emis_left == 60
        assert view.payments == []

    def test_payments_in_recorded_order(self, ledger, reference_loan):
        amounts = ["2500", "100", "7500"]
        for amount in amounts:
            ledger.record_payment(reference_loan.id, amount, "EMI")

        view = ledger.get_ledger(reference_loan.id)
        assert [str(p.amount) for p in view.payments] == amounts
        assert view.paid_so_far == Decimal('10100')
        assert view.balance == Decimal('139900')
        assert view.emis_left == 56

    def test_reads_are_idempotent(self, ledger, reference_loan):
        ledger.record_payment(reference_loan.id, 2500, "EMI")
        assert ledger.get_ledger(reference_loan.id) == ledger.get_ledger(reference_loan.id)

    def test_unknown_loan(self, ledger):
        with pytest.raises(NotFoundError, match="not found"):
            ledger.get_ledger("UNKNOWN")


class TestAccountOverview:
    """Test customer overview"""

    def test_two_loans(self, ledger):
        """Each loan reflects only its own payments"""
        first = ledger.create_loan("CUST001", 100000, 5, 10)
        second = ledger.create_loan("CUST001", 12000, 1, 0)
        ledger.create_loan("CUST002", 5000, 1, 5)

        ledger.record_payment(first.id, 2500, "EMI")
        ledger.record_payment(second.id, 1000, "EMI")
        ledger.record_payment(second.id, 1000, "EMI")

        overview = ledger.get_overview("CUST001")

        assert isinstance(overview, AccountOverview)
        assert overview.customer_id == "CUST001"
        assert overview.total_loans == 2
        assert [s.loan_id for s in overview.loans] == [first.id, second.id]

        one, two = overview.loans
        assert one.principal == Decimal('100000')
        assert one.total_payable == Decimal('150000')
        assert one.interest == Decimal('50000')
        assert one.installment == Decimal('2500')
        assert one.amount_paid == Decimal('2500')
        assert one.emis_left == 59

        assert two.interest == Decimal('0')
        assert two.amount_paid == Decimal('2000')
        assert two.emis_left == 10

    def test_matches_ledger_view(self, ledger, reference_loan):
        ledger.record_payment(reference_loan.id, 3000, "EMI")

        summary = ledger.get_overview("CUST001").loans[0]
        view = ledger.get_ledger(reference_loan.id)
        assert summary.amount_paid == view.paid_so_far
        assert summary.emis_left == view.emis_left

    def test_overpaid_loan_is_clamped(self, ledger, reference_loan):
        ledger.record_payment(reference_loan.id, 200000, "LUMP_SUM")
        assert ledger.get_overview("CUST001").loans[0].emis_left == 0

    def test_customer_without_loans(self, ledger):
        with pytest.raises(NotFoundError, match="No loans found"):
            ledger.get_overview("CUST404")


class TestExtremeInputs:
    """Loans that are stored can always be read back"""

    def test_huge_term_is_never_stored(self, ledger, storage):
        with pytest.raises(ValidationError) as exc_info:
            ledger.create_loan("CUST001", 1000, 10 ** 15, 5)
        assert exc_info.value.field == "term_years"
        assert storage.count("loans") == 0

        with pytest.raises(NotFoundError):
            ledger.get_overview("CUST001")

    def test_huge_payment_rejected(self, ledger, reference_loan, storage):
        with pytest.raises(ValidationError) as exc_info:
            ledger.record_payment(reference_loan.id, "1e1000000", "EMI")
        assert exc_info.value.field == "amount"
        assert storage.count("payments") == 0

    def test_largest_loan_stays_readable(self, ledger):
        loan = ledger.create_loan("CUST001", "1e15", 100, "1e15")

        receipt = ledger.record_payment(loan.id, "1e15", "LUMP_SUM")
        view = ledger.get_ledger(loan.id)
        overview = ledger.get_overview("CUST001")

        assert view.balance == receipt.balance
        assert view.emis_left == receipt.emis_left
        assert 0 < view.emis_left <= 1200
        assert overview.loans[0].emis_left == view.emis_left
