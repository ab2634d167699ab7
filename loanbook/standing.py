"""
Loan Standing Module

Classifies a loan's repayment progress against its schedule: how many terms
have elapsed, how many the recorded payments cover, and whether the loan is
behind. Purely advisory; nothing here mutates loans or payments.
"""

from decimal import Decimal, ROUND_CEILING
from datetime import date, timedelta
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .amortization import FIRST_DUE_OFFSET_DAYS, TermEntry, add_months, parse_iso_date
from .currency import ZERO, format_money, round_money, to_decimal


@dataclass(frozen=True)
class StandingReport:
    """Snapshot of a loan's repayment standing on a given date"""
    as_of_date: date
    terms_elapsed: int
    terms_paid_for: int
    unpaid_term_count: int
    amount_past_due: Decimal
    is_delinquent: bool
    total_paid: Decimal
    expected_cumulative_due: Decimal
    average_payment: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'as_of_date': self.as_of_date.isoformat(),
            'terms_elapsed': self.terms_elapsed,
            'terms_paid_for': self.terms_paid_for,
            'unpaid_term_count': self.unpaid_term_count,
            'amount_past_due': str(self.amount_past_due),
            'is_delinquent': self.is_delinquent,
            'total_paid': str(self.total_paid),
            'expected_cumulative_due': str(self.expected_cumulative_due),
            'average_payment': str(self.average_payment),
        }


def whole_months_between(start: date, end: date) -> int:
    """
    Count complete calendar months from start to end (0 if end is earlier).

    A month is complete once its anniversary, clamped to the end of a short
    month the way add_months does, has been reached.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and add_months(start, months) > end:
        months -= 1
    return max(months, 0)


def _payment_field(payment: Any, name: str) -> Any:
    if isinstance(payment, dict):
        return payment.get(name)
    return getattr(payment, name, None)


def assess_standing(
    schedule: List[TermEntry],
    payments: Iterable[Any],
    as_of_date: Optional[date] = None,
    start_date: Optional[date] = None
) -> StandingReport:
    """
    Assess whether a loan is behind on its schedule.

    Args:
        schedule: Schedule produced by compute_schedule
        payments: Recorded payments (objects or dicts with ``amount`` and
            ``payment_date``)
        as_of_date: Date to assess on (defaults to today). A later payment
            date takes precedence.
        start_date: Loan start date. Derived from the first due date when
            not given.

    Returns:
        StandingReport
    """
    payments = list(payments)
    as_of_date = parse_iso_date(as_of_date) if as_of_date else date.today()

    if not schedule:
        total_paid = sum((round_money(to_decimal(_payment_field(p, 'amount'))) for p in payments), ZERO)
        return StandingReport(as_of_date, 0, 0, 0, ZERO, False, total_paid, ZERO, ZERO)

    if start_date is None:
        start_date = schedule[0].scheduled_date - timedelta(days=FIRST_DUE_OFFSET_DAYS)
    else:
        start_date = parse_iso_date(start_date)

    total_paid = ZERO
    reference_date = as_of_date
    for payment in payments:
        total_paid += round_money(to_decimal(_payment_field(payment, 'amount')))
        paid_on = _payment_field(payment, 'payment_date')
        if paid_on:
            paid_on = parse_iso_date(paid_on)
            if paid_on > reference_date:
                reference_date = paid_on

    terms_elapsed = min(whole_months_between(start_date, reference_date), len(schedule))

    expected_cumulative_due = sum((entry.total_due for entry in schedule[:terms_elapsed]), ZERO)
    average_payment = round_money(
        sum((entry.total_due for entry in schedule), ZERO) / Decimal(len(schedule))
    )

    terms_paid_for = 0
    cumulative_due = ZERO
    for entry in schedule:
        cumulative_due += entry.total_due
        if cumulative_due > total_paid:
            break
        terms_paid_for += 1

    shortfall = expected_cumulative_due - total_paid
    unpaid_term_count = 0
    if shortfall > ZERO and average_payment > ZERO:
        unpaid_term_count = int((shortfall / average_payment).to_integral_value(rounding=ROUND_CEILING))

    is_delinquent = unpaid_term_count > 0
    amount_past_due = round_money(average_payment * unpaid_term_count) if is_delinquent else ZERO

    return StandingReport(
        as_of_date=reference_date,
        terms_elapsed=terms_elapsed,
        terms_paid_for=terms_paid_for,
        unpaid_term_count=unpaid_term_count,
        amount_past_due=amount_past_due,
        is_delinquent=is_delinquent,
        total_paid=total_paid,
        expected_cumulative_due=expected_cumulative_due,
        average_payment=average_payment,
    )


def delinquency_notice(report: StandingReport, currency_code: Optional[str] = None) -> str:
    """Text appended to a payment description while the loan is behind"""
    if not report.is_delinquent:
        return ""
    plural = "s" if report.unpaid_term_count != 1 else ""
    return (
        f"[Delinquent as of {report.as_of_date.isoformat()}: "
        f"{report.unpaid_term_count} unpaid term{plural}, "
        f"{format_money(report.amount_past_due, currency_code)} past due]"
    )
