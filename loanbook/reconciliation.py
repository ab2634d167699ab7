"""
Balance Reconciliation Module

Keeps a loan's running outstanding balance in step with its payments.

The one-time admin fee is NOT part of the balance when a loan is created.
It is added the first time a payment is applied, gated by the loan's
``admin_fee_charged`` flag, so it is charged exactly once. Reversing a
payment never un-charges the fee.

These functions mutate the loan object in memory only. Persisting the loan
together with the payment is the caller's job (see LoanManager).
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from .currency import ZERO, round_money, to_decimal
from .errors import InvalidPaymentAmount, PaymentExceedsBalance


class LoanState(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"      # Balance still owed
    SETTLED = "settled"    # Balance is zero


def loan_state(outstanding_balance: Decimal) -> LoanState:
    return LoanState.SETTLED if outstanding_balance <= ZERO else LoanState.ACTIVE


def refresh_state(loan: Any) -> LoanState:
    """Re-derive the loan's lifecycle state from its balance"""
    state = loan_state(loan.outstanding_balance)
    loan.state = state
    return state


def admin_fee_amount(loan: Any) -> Decimal:
    """One-time admin fee: principal * admin fee rate, in cents"""
    terms = getattr(loan, 'terms', loan)
    rate = terms.admin_fee_rate if terms.admin_fee_rate is not None else ZERO
    return round_money(to_decimal(terms.principal) * to_decimal(rate))


def pending_admin_fee(loan: Any) -> Decimal:
    """Admin fee the next applied payment will charge (zero once charged)"""
    if loan.admin_fee_charged:
        return ZERO
    return admin_fee_amount(loan)


def _payment_amount(amount: Any) -> Decimal:
    try:
        value = round_money(to_decimal(amount))
    except ValueError:
        raise InvalidPaymentAmount(f"Payment amount must be a number, got {amount!r}")
    if value <= ZERO:
        raise InvalidPaymentAmount(f"Payment amount must be positive, got {value}")
    return value


def apply_payment(loan: Any, amount: Any) -> Decimal:
    """
    Apply a new payment to the loan balance.

    Charges the admin fee first if it has not been charged yet. On failure
    nothing is changed, including the fee flag.

    Args:
        loan: Loan with ``outstanding_balance``, ``admin_fee_charged`` and terms
        amount: Payment amount

    Returns:
        New outstanding balance

    Raises:
        InvalidPaymentAmount: amount is not a positive number
        PaymentExceedsBalance: amount is larger than the balance owed
    """
    amount = _payment_amount(amount)
    owed = loan.outstanding_balance + pending_admin_fee(loan)

    if amount > owed:
        raise PaymentExceedsBalance(
            f"Payment {amount} exceeds outstanding balance {owed}"
        )

    loan.outstanding_balance = owed - amount
    loan.admin_fee_charged = True
    refresh_state(loan)
    return loan.outstanding_balance


def reverse_payment(loan: Any, amount: Any) -> Decimal:
    """
    Undo a deleted payment: the amount goes back onto the balance.
    The admin fee stays charged.
    """
    amount = _payment_amount(amount)
    loan.outstanding_balance = loan.outstanding_balance + amount
    refresh_state(loan)
    return loan.outstanding_balance


def adjust_payment(loan: Any, old_amount: Any, new_amount: Any) -> Decimal:
    """
    Apply an edit of a payment's amount as a delta on the balance.

    Raises:
        InvalidPaymentAmount: either amount is not a positive number
        PaymentExceedsBalance: the larger amount would overpay the loan
    """
    old_amount = _payment_amount(old_amount)
    new_amount = _payment_amount(new_amount)
    delta = new_amount - old_amount

    if loan.outstanding_balance - delta < ZERO:
        raise PaymentExceedsBalance(
            f"Updated payment {new_amount} exceeds outstanding balance "
            f"{loan.outstanding_balance + old_amount}"
        )

    loan.outstanding_balance = loan.outstanding_balance - delta
    refresh_state(loan)
    return loan.outstanding_balance
