"""
Test suite for standing module

Tests elapsed-term counting, delinquency classification and the notice text.
"""

import pytest
from decimal import Decimal
from datetime import date

from loanbook.amortization import LoanTerms, compute_schedule
from loanbook.currency import ZERO
from loanbook.standing import assess_standing, delinquency_notice, whole_months_between


@pytest.fixture
def flat_schedule():
    """1,200 at 0% over 12 terms: 100.00 due every month"""
    terms = LoanTerms(principal=1200, annual_interest_rate=0, term_count=12, start_date=date(2024, 1, 1))
    return compute_schedule(terms)


def payment(amount, paid_on):
    return {"amount": Decimal(amount), "payment_date": paid_on}


class TestWholeMonths:
    """Test calendar month counting"""

    def test_whole_months(self):
        assert whole_months_between(date(2024, 1, 1), date(2024, 1, 31)) == 0
        assert whole_months_between(date(2024, 1, 1), date(2024, 2, 1)) == 1
        assert whole_months_between(date(2024, 1, 15), date(2024, 4, 14)) == 2
        assert whole_months_between(date(2024, 1, 15), date(2024, 4, 15)) == 3
        assert whole_months_between(date(2024, 1, 31), date(2024, 2, 28)) == 0

    def test_short_month_end_completes_the_month(self):
        """Jan 31 to Feb 29 is a full month, matching the clamped due dates"""
        assert whole_months_between(date(2024, 1, 31), date(2024, 2, 29)) == 1
        assert whole_months_between(date(2024, 1, 31), date(2024, 4, 29)) == 2
        assert whole_months_between(date(2024, 1, 31), date(2024, 4, 30)) == 3
        assert whole_months_between(date(2023, 3, 31), date(2023, 4, 30)) == 1

    def test_end_before_start(self):
        assert whole_months_between(date(2024, 5, 1), date(2024, 1, 1)) == 0


class TestAssessStanding:
    """Test delinquency assessment"""

    def test_new_loan_is_not_delinquent(self, flat_schedule):
        report = assess_standing(flat_schedule, [], as_of_date=date(2024, 1, 15))

        assert report.terms_elapsed == 0
        assert report.unpaid_term_count == 0
        assert not report.is_delinquent
        assert report.amount_past_due == ZERO
        assert report.average_payment == Decimal('100.00')

    def test_no_payments_after_three_months(self, flat_schedule):
        report = assess_standing(flat_schedule, [], as_of_date=date(2024, 4, 1))

        assert report.terms_elapsed == 3
        assert report.expected_cumulative_due == Decimal('300.00')
        assert report.unpaid_term_count == 3
        assert report.is_delinquent
        assert report.amount_past_due == Decimal('300.00')

    def test_partial_shortfall_rounds_up_to_a_term(self, flat_schedule):
        report = assess_standing(flat_schedule, [payment('250', date(2024, 3, 1))],
                                 as_of_date=date(2024, 4, 1))

        assert report.total_paid == Decimal('250.00')
        assert report.terms_paid_for == 2
        assert report.unpaid_term_count == 1
        assert report.amount_past_due == Decimal('100.00')

    def test_paid_up_loan(self, flat_schedule):
        payments = [payment('100', date(2024, m, 28)) for m in (1, 2, 3)]
        report = assess_standing(flat_schedule, payments, as_of_date=date(2024, 4, 1))

        assert report.terms_paid_for == 3
        assert not report.is_delinquent

    def test_prepayment_is_never_delinquent(self, flat_schedule):
        report = assess_standing(flat_schedule, [payment('600', date(2024, 1, 10))],
                                 as_of_date=date(2024, 4, 1))

        assert report.terms_paid_for == 6
        assert not report.is_delinquent
        assert report.unpaid_term_count == 0

    def test_elapsed_terms_clamped_to_schedule(self, flat_schedule):
        report = assess_standing(flat_schedule, [], as_of_date=date(2030, 1, 1))

        assert report.terms_elapsed == 12
        assert report.expected_cumulative_due == Decimal('1200.00')
        assert report.unpaid_term_count == 12

    def test_later_payment_date_moves_reference_date(self, flat_schedule):
        """A payment dated after as_of is assessed as of that payment"""
        report = assess_standing(flat_schedule, [payment('100', date(2024, 3, 5))],
                                 as_of_date=date(2024, 1, 15))

        assert report.as_of_date == date(2024, 3, 5)
        assert report.terms_elapsed == 2
        assert report.unpaid_term_count == 1

    def test_start_date_derived_from_schedule(self, flat_schedule):
        explicit = assess_standing(flat_schedule, [], as_of_date=date(2024, 6, 1), start_date=date(2024, 1, 1))
        derived = assess_standing(flat_schedule, [], as_of_date=date(2024, 6, 1))
        assert explicit == derived

    def test_accepts_payment_objects_and_iso_strings(self, flat_schedule):
        class Paid:
            amount = Decimal('300')
            payment_date = date(2024, 3, 30)

        report = assess_standing(flat_schedule, [Paid()], as_of_date="2024-04-01")
        assert report.total_paid == Decimal('300.00')
        assert not report.is_delinquent

    def test_empty_schedule(self):
        report = assess_standing([], [payment('10', date(2024, 1, 1))], as_of_date=date(2024, 2, 1))

        assert report.terms_elapsed == 0
        assert not report.is_delinquent
        assert report.total_paid == Decimal('10.00')

    def test_payments_are_not_mutated(self, flat_schedule):
        payments = [payment('100', date(2024, 2, 1))]
        assess_standing(flat_schedule, payments, as_of_date=date(2024, 4, 1))
        assert payments == [payment('100', date(2024, 2, 1))]


class TestDelinquencyNotice:
    """Test the notice appended to payment descriptions"""

    def test_notice_text(self, flat_schedule):
        report = assess_standing(flat_schedule, [], as_of_date=date(2024, 4, 1))
        assert delinquency_notice(report, "USD") == \
            "[Delinquent as of 2024-04-01: 3 unpaid terms, $300.00 past due]"

    def test_notice_uses_currency_symbol(self, flat_schedule):
        report = assess_standing(flat_schedule, [payment('250', date(2024, 3, 1))],
                                 as_of_date=date(2024, 4, 1))
        assert delinquency_notice(report, "ZAR") == \
            "[Delinquent as of 2024-04-01: 1 unpaid term, R100.00 past due]"

    def test_no_notice_when_current(self, flat_schedule):
        report = assess_standing(flat_schedule, [], as_of_date=date(2024, 1, 15))
        assert delinquency_notice(report, "USD") == ""

    def test_report_to_dict(self, flat_schedule):
        data = assess_standing(flat_schedule, [], as_of_date=date(2024, 4, 1)).to_dict()
        assert data['as_of_date'] == "2024-04-01"
        assert data['amount_past_due'] == "300.00"
        assert data['is_delinquent'] is True
