"""
Amortization Module

Pure schedule generation for a single loan: one entry per monthly term with
the principal, interest and admin fee split and the running balance.

Every monetary subcomponent is rounded to cents as it is produced, and the
final term takes whatever principal is left so the schedule always closes at
exactly zero. Nothing here performs I/O; the same terms always produce the
same schedule.
"""

from decimal import Decimal
from datetime import date, datetime, timedelta
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
from enum import Enum
import calendar

from .currency import ZERO, round_money, to_decimal
from .errors import InvalidLoanParameters, InvalidStartDate, InvalidTermCount


# Term 1 falls due 30 days after the start date rather than one calendar month
FIRST_DUE_OFFSET_DAYS = 30
MONTHS_PER_YEAR = Decimal('12')


class AmortizationPolicy(Enum):
    """How each installment is split between principal and interest"""
    EQUAL_INSTALLMENT = "equal_installment"  # Annuity - fixed total payment
    EQUAL_PRINCIPAL = "equal_principal"      # Fixed principal + declining interest
    SIMPLE_INTEREST = "simple_interest"      # Flat interest on the original principal


DEFAULT_POLICY = AmortizationPolicy.EQUAL_INSTALLMENT


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping the day to the end of shorter months"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def compute_end_date(start_date: date, term_count: int) -> date:
    """Loan end date: start date plus the term count in calendar months"""
    return add_months(start_date, term_count)


def first_due_date(start_date: date) -> date:
    return start_date + timedelta(days=FIRST_DUE_OFFSET_DAYS)


def parse_iso_date(value: Any) -> date:
    """
    Parse a date-only value.

    Accepts date objects, datetimes (the time part is dropped) and ISO-8601
    strings. Strings carrying a time component are cut at the "T" so that a
    UTC timestamp never shifts the calendar day.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip().split("T")[0].split(" ")[0]
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
    raise ValueError(f"Invalid date: {value!r}")


def coerce_policy(value: Any) -> AmortizationPolicy:
    if isinstance(value, AmortizationPolicy):
        return value
    if value is None:
        return DEFAULT_POLICY
    try:
        return AmortizationPolicy(str(value).lower())
    except ValueError:
        raise InvalidLoanParameters(f"Unknown amortization policy: {value!r}")


def _coerce_term_count(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise InvalidTermCount(f"Term count must be a whole number, got {value!r}")
    if isinstance(value, int):
        count = value
    else:
        try:
            number = to_decimal(value)
        except ValueError:
            raise InvalidTermCount(f"Term count must be a whole number, got {value!r}")
        if number != number.to_integral_value():
            raise InvalidTermCount(f"Term count must be a whole number, got {value!r}")
        count = int(number)
    if count <= 0:
        raise InvalidTermCount(f"Term count must be at least 1, got {count}")
    return count


def _coerce_start_date(value: Any) -> date:
    if value is None or value == "":
        raise InvalidStartDate("Start date is required")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise InvalidStartDate(f"Invalid start date: {value!r}")


def _coerce_amount(value: Any, name: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        raise InvalidLoanParameters(f"{name} must be a number, got {value!r}")


@dataclass
class LoanTerms:
    """
    Loan definition the schedule is computed from.

    Values are normalized and validated on construction: amounts become
    Decimal, the start date becomes a date and the policy an enum member.
    """
    principal: Decimal
    annual_interest_rate: Decimal       # e.g. 0.12 for 12%
    term_count: int                     # Number of monthly installments
    start_date: date
    admin_fee_rate: Decimal = ZERO      # One-time fee as a fraction of principal
    amortization_policy: AmortizationPolicy = DEFAULT_POLICY

    def __post_init__(self):
        self.principal = _coerce_amount(self.principal, "Principal")
        self.annual_interest_rate = _coerce_amount(self.annual_interest_rate, "Annual interest rate")
        self.admin_fee_rate = _coerce_amount(
            ZERO if self.admin_fee_rate is None else self.admin_fee_rate, "Admin fee rate"
        )
        self.term_count = _coerce_term_count(self.term_count)
        self.start_date = _coerce_start_date(self.start_date)
        self.amortization_policy = coerce_policy(self.amortization_policy)
        validate_terms(self)
        self.principal = round_money(self.principal)

    @property
    def monthly_rate(self) -> Decimal:
        return self.annual_interest_rate / MONTHS_PER_YEAR

    @property
    def admin_fee(self) -> Decimal:
        """One-time admin fee amount"""
        return round_money(self.principal * self.admin_fee_rate)

    @property
    def end_date(self) -> date:
        return compute_end_date(self.start_date, self.term_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'principal': str(self.principal),
            'annual_interest_rate': str(self.annual_interest_rate),
            'term_count': self.term_count,
            'start_date': self.start_date.isoformat(),
            'admin_fee_rate': str(self.admin_fee_rate),
            'amortization_policy': self.amortization_policy.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanTerms':
        return cls(
            principal=Decimal(data['principal']),
            annual_interest_rate=Decimal(data['annual_interest_rate']),
            term_count=data['term_count'],
            start_date=data['start_date'],
            admin_fee_rate=Decimal(data.get('admin_fee_rate', '0')),
            amortization_policy=data.get('amortization_policy', DEFAULT_POLICY.value),
        )


def validate_terms(terms: Any) -> Tuple[Decimal, Decimal, int, Decimal, date]:
    """
    Validate loan terms and return them normalized.

    Returns:
        (principal, annual_interest_rate, term_count, admin_fee_rate, start_date)

    Raises:
        InvalidTermCount: term count below 1
        InvalidStartDate: start date missing or unparseable
        InvalidLoanParameters: non-positive principal or negative rates
    """
    term_count = _coerce_term_count(getattr(terms, 'term_count', None))
    start_date = _coerce_start_date(getattr(terms, 'start_date', None))
    principal = _coerce_amount(getattr(terms, 'principal', None), "Principal")
    annual_rate = _coerce_amount(getattr(terms, 'annual_interest_rate', None), "Annual interest rate")
    admin_fee_rate = getattr(terms, 'admin_fee_rate', None)
    admin_fee_rate = ZERO if admin_fee_rate is None else _coerce_amount(admin_fee_rate, "Admin fee rate")

    if principal <= ZERO:
        raise InvalidLoanParameters(f"Principal must be positive, got {principal}")
    try:
        rounded_principal = round_money(principal)
    except ValueError:
        raise InvalidLoanParameters(f"Principal is too large, got {principal}")
    if rounded_principal <= ZERO:
        raise InvalidLoanParameters(f"Principal must be at least one cent, got {principal}")
    if annual_rate < ZERO:
        raise InvalidLoanParameters(f"Annual interest rate cannot be negative, got {annual_rate}")
    if admin_fee_rate < ZERO:
        raise InvalidLoanParameters(f"Admin fee rate cannot be negative, got {admin_fee_rate}")
    try:
        round_money(rounded_principal * admin_fee_rate)
    except ValueError:
        raise InvalidLoanParameters(f"Admin fee rate is too large, got {admin_fee_rate}")

    return rounded_principal, annual_rate, term_count, admin_fee_rate, start_date


@dataclass(frozen=True)
class TermEntry:
    """Single term of an amortization schedule"""
    term_number: int
    scheduled_date: date
    principal: Decimal
    interest: Decimal
    admin_fee: Decimal
    total_due: Decimal
    beginning_balance: Decimal
    ending_balance: Decimal

    def __post_init__(self):
        if self.principal + self.interest + self.admin_fee != self.total_due:
            raise ValueError(
                f"Term {self.term_number}: total due {self.total_due} does not equal "
                f"principal {self.principal} + interest {self.interest} + fee {self.admin_fee}"
            )
        if self.beginning_balance - self.principal != self.ending_balance:
            raise ValueError(
                f"Term {self.term_number}: ending balance {self.ending_balance} does not equal "
                f"beginning balance {self.beginning_balance} - principal {self.principal}"
            )

    @property
    def installment(self) -> Decimal:
        """Principal plus interest, without the admin fee"""
        return self.principal + self.interest

    def to_dict(self) -> Dict[str, Any]:
        return {
            'term_number': self.term_number,
            'scheduled_date': self.scheduled_date.isoformat(),
            'principal': str(self.principal),
            'interest': str(self.interest),
            'admin_fee': str(self.admin_fee),
            'total_due': str(self.total_due),
            'beginning_balance': str(self.beginning_balance),
            'ending_balance': str(self.ending_balance),
        }


def annuity_payment(principal: Decimal, monthly_rate: Decimal, term_count: int) -> Decimal:
    """
    Fixed installment for an amortized loan: P * r / (1 - (1 + r)^-n),
    or P / n when there is no interest.
    """
    if monthly_rate == ZERO:
        return round_money(principal / Decimal(term_count))
    factor = (Decimal('1') + monthly_rate) ** -term_count
    return round_money(principal * monthly_rate / (Decimal('1') - factor))


# A split returns (interest, principal) for a term given the balance at its start
Split = Callable[[int, Decimal], Tuple[Decimal, Decimal]]


def _equal_installment_split(principal: Decimal, monthly_rate: Decimal, term_count: int) -> Split:
    payment = annuity_payment(principal, monthly_rate, term_count)

    def split(term_number: int, balance: Decimal) -> Tuple[Decimal, Decimal]:
        interest = round_money(balance * monthly_rate)
        return interest, payment - interest

    return split


def _equal_principal_split(principal: Decimal, monthly_rate: Decimal, term_count: int) -> Split:
    principal_per_term = round_money(principal / Decimal(term_count))

    def split(term_number: int, balance: Decimal) -> Tuple[Decimal, Decimal]:
        return round_money(balance * monthly_rate), principal_per_term

    return split


def _simple_interest_split(principal: Decimal, monthly_rate: Decimal, term_count: int) -> Split:
    # Total interest P * rate * n / 12 spread evenly over n terms
    interest_per_term = round_money(principal * monthly_rate)
    principal_per_term = round_money(principal / Decimal(term_count))

    def split(term_number: int, balance: Decimal) -> Tuple[Decimal, Decimal]:
        return interest_per_term, principal_per_term

    return split


_SPLITS: Dict[AmortizationPolicy, Callable[[Decimal, Decimal, int], Split]] = {
    AmortizationPolicy.EQUAL_INSTALLMENT: _equal_installment_split,
    AmortizationPolicy.EQUAL_PRINCIPAL: _equal_principal_split,
    AmortizationPolicy.SIMPLE_INTEREST: _simple_interest_split,
}


def compute_schedule(loan: Any, policy: Optional[AmortizationPolicy] = None) -> List[TermEntry]:
    """
    Compute the full payment schedule for a loan.

    Args:
        loan: LoanTerms, or any record exposing them as ``.terms``
        policy: Override for the terms' amortization policy

    Returns:
        One TermEntry per term, ordered by term number

    Raises:
        InvalidTermCount, InvalidStartDate, InvalidLoanParameters
    """
    terms = getattr(loan, 'terms', loan)
    principal, annual_rate, term_count, admin_fee_rate, start_date = validate_terms(terms)
    if policy is None:
        policy = getattr(terms, 'amortization_policy', None)
    policy = coerce_policy(policy)

    monthly_rate = annual_rate / MONTHS_PER_YEAR
    split = _SPLITS[policy](principal, monthly_rate, term_count)
    admin_fee = round_money(principal * admin_fee_rate)

    schedule = []
    balance = principal
    scheduled_date = first_due_date(start_date)

    for term_number in range(1, term_count + 1):
        interest, principal_part = split(term_number, balance)
        principal_part = max(principal_part, ZERO)

        # Final term absorbs rounding residue so the balance closes at zero
        if term_number == term_count or principal_part > balance:
            principal_part = balance

        fee = admin_fee if term_number == 1 else ZERO
        ending_balance = balance - principal_part

        schedule.append(TermEntry(
            term_number=term_number,
            scheduled_date=scheduled_date,
            principal=principal_part,
            interest=interest,
            admin_fee=fee,
            total_due=principal_part + interest + fee,
            beginning_balance=balance,
            ending_balance=ending_balance,
        ))

        balance = ending_balance
        scheduled_date = add_months(scheduled_date, 1)

    return schedule


def monthly_payment(loan: Any) -> Decimal:
    """First regular installment (principal + interest, no admin fee)"""
    return compute_schedule(loan)[0].installment


@dataclass(frozen=True)
class ScheduleSummary:
    """Totals row for a schedule"""
    term_count: int
    total_principal: Decimal
    total_interest: Decimal
    total_admin_fee: Decimal
    total_due: Decimal
    average_payment: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'term_count': self.term_count,
            'total_principal': str(self.total_principal),
            'total_interest': str(self.total_interest),
            'total_admin_fee': str(self.total_admin_fee),
            'total_due': str(self.total_due),
            'average_payment': str(self.average_payment),
        }


def summarize_schedule(schedule: List[TermEntry]) -> ScheduleSummary:
    if not schedule:
        return ScheduleSummary(0, ZERO, ZERO, ZERO, ZERO, ZERO)

    total_due = sum((entry.total_due for entry in schedule), ZERO)
    return ScheduleSummary(
        term_count=len(schedule),
        total_principal=sum((entry.principal for entry in schedule), ZERO),
        total_interest=sum((entry.interest for entry in schedule), ZERO),
        total_admin_fee=sum((entry.admin_fee for entry in schedule), ZERO),
        total_due=total_due,
        average_payment=round_money(total_due / Decimal(len(schedule))),
    )
