"""
Test suite for reconciliation module

Tests the running-balance rules: lazy admin fee, overpayment rejection,
payment reversal and amount edits.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from loanbook.amortization import LoanTerms
from loanbook.errors import InvalidPaymentAmount, PaymentExceedsBalance
from loanbook.loans import Loan
from loanbook.reconciliation import (
    LoanState, adjust_payment, admin_fee_amount, apply_payment, loan_state,
    pending_admin_fee, refresh_state, reverse_payment
)


def make_loan(principal, admin_fee_rate='0', balance=None, fee_charged=False):
    now = datetime.now(timezone.utc)
    return Loan(
        id="LN-TEST0001",
        created_at=now,
        updated_at=now,
        client_id="CL-1",
        terms=LoanTerms(
            principal=Decimal(principal),
            annual_interest_rate=Decimal('0.12'),
            term_count=12,
            start_date="2024-01-01",
            admin_fee_rate=Decimal(admin_fee_rate)
        ),
        outstanding_balance=None if balance is None else Decimal(balance),
        admin_fee_charged=fee_charged
    )


class TestAdminFee:
    """Test the one-time admin fee"""

    def test_fee_amount(self):
        loan = make_loan('12000', '0.02')
        assert admin_fee_amount(loan) == Decimal('240.00')
        assert admin_fee_amount(loan.terms) == Decimal('240.00')

    def test_balance_seeded_without_fee(self):
        loan = make_loan('1000', '0.02')
        assert loan.outstanding_balance == Decimal('1000.00')
        assert not loan.admin_fee_charged
        assert pending_admin_fee(loan) == Decimal('20.00')

    def test_first_payment_charges_fee(self):
        loan = make_loan('1000', '0.02')

        assert apply_payment(loan, Decimal('100')) == Decimal('920.00')
        assert loan.admin_fee_charged
        assert pending_admin_fee(loan) == Decimal('0.00')

    def test_fee_charged_once(self):
        loan = make_loan('1000', '0.02')
        apply_payment(loan, Decimal('100'))
        apply_payment(loan, Decimal('100'))
        assert loan.outstanding_balance == Decimal('820.00')

    def test_reversal_keeps_fee(self):
        loan = make_loan('1000', '0.02')
        apply_payment(loan, Decimal('100'))
        reverse_payment(loan, Decimal('100'))

        assert loan.outstanding_balance == Decimal('1020.00')
        assert loan.admin_fee_charged


class TestApplyPayment:
    """Test applying new payments"""

    def test_overpayment_rejected_without_mutation(self):
        """A payment of 1200 against a balance of 1000 is rejected"""
        loan = make_loan('1000')

        with pytest.raises(PaymentExceedsBalance, match="exceeds outstanding balance"):
            apply_payment(loan, Decimal('1200'))

        assert loan.outstanding_balance == Decimal('1000.00')
        assert not loan.admin_fee_charged
        assert loan.state == LoanState.ACTIVE

    def test_overpayment_check_includes_pending_fee(self):
        loan = make_loan('1000', '0.02')

        with pytest.raises(PaymentExceedsBalance):
            apply_payment(loan, Decimal('1020.01'))
        assert not loan.admin_fee_charged

        assert apply_payment(loan, Decimal('1020')) == Decimal('0.00')
        assert loan.state == LoanState.SETTLED

    def test_payoff_settles_loan(self):
        loan = make_loan('500')
        apply_payment(loan, '500')
        assert loan.outstanding_balance == Decimal('0.00')
        assert loan.is_settled

    def test_amounts_are_rounded_to_cents(self):
        loan = make_loan('100')
        apply_payment(loan, '10.005')
        assert loan.outstanding_balance == Decimal('89.99')

    def test_non_positive_or_non_numeric_amounts(self):
        loan = make_loan('1000')
        for amount in (0, Decimal('-5'), "abc", None, "1e30"):
            with pytest.raises(InvalidPaymentAmount):
                apply_payment(loan, amount)
        assert loan.outstanding_balance == Decimal('1000.00')


class TestReversePayment:
    """Test deleting payments"""

    def test_delete_restores_amount(self):
        """Deleting a 500 payment on a balance of 800 restores 1300"""
        loan = make_loan('1300', balance='800', fee_charged=True)
        assert reverse_payment(loan, Decimal('500')) == Decimal('1300.00')

    def test_reversal_reactivates_settled_loan(self):
        loan = make_loan('500', balance='0', fee_charged=True)
        refresh_state(loan)
        assert loan.is_settled

        reverse_payment(loan, Decimal('200'))
        assert loan.state == LoanState.ACTIVE


class TestAdjustPayment:
    """Test editing a payment amount"""

    def test_increase(self):
        loan = make_loan('1000', balance='500', fee_charged=True)
        assert adjust_payment(loan, Decimal('500'), Decimal('700')) == Decimal('300.00')

    def test_decrease(self):
        loan = make_loan('1000', balance='500', fee_charged=True)
        assert adjust_payment(loan, Decimal('500'), Decimal('200')) == Decimal('800.00')

    def test_increase_beyond_balance_rejected(self):
        loan = make_loan('1000', balance='500', fee_charged=True)

        with pytest.raises(PaymentExceedsBalance):
            adjust_payment(loan, Decimal('500'), Decimal('1000.01'))
        assert loan.outstanding_balance == Decimal('500')

    def test_increase_to_exact_payoff(self):
        loan = make_loan('1000', balance='500', fee_charged=True)
        adjust_payment(loan, Decimal('500'), Decimal('1000'))
        assert loan.state == LoanState.SETTLED

    def test_invalid_new_amount(self):
        loan = make_loan('1000', balance='500', fee_charged=True)
        with pytest.raises(InvalidPaymentAmount):
            adjust_payment(loan, Decimal('500'), Decimal('0'))

    def test_adjust_then_delete_restores_original_balance(self):
        """Editing 300 to 400 and then deleting it gives back the balance before the 300"""
        loan = make_loan('1000', balance='700', fee_charged=True)
        assert adjust_payment(loan, Decimal('300'), Decimal('400')) == Decimal('600.00')
        assert reverse_payment(loan, Decimal('400')) == Decimal('1000.00')
        assert loan.state == LoanState.ACTIVE

    def test_amount_too_large_rejected(self):
        loan = make_loan('1000', balance='500', fee_charged=True)
        with pytest.raises(InvalidPaymentAmount):
            adjust_payment(loan, Decimal('500'), '1e30')
        assert loan.outstanding_balance == Decimal('500')


class TestLoanState:
    """Test lifecycle derivation"""

    def test_loan_state(self):
        assert loan_state(Decimal('0.00')) == LoanState.SETTLED
        assert loan_state(Decimal('0.01')) == LoanState.ACTIVE
