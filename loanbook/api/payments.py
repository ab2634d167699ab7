"""
Payment endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import LoanbookSystem, get_system, http_error
from .schemas import CreatePaymentRequest, UpdatePaymentRequest, MoneyModel
from ..errors import LoanbookError, LoanNotFound
from ..loans import Payment


router = APIRouter()


def payment_response(payment: Payment, code: str) -> dict:
    return {
        "payment_id": payment.payment_id,
        "loan_id": payment.loan_id,
        "client_id": payment.client_id,
        "term_number": payment.term_number,
        "scheduled_date": payment.scheduled_date.isoformat() if payment.scheduled_date else None,
        "payment_date": payment.payment_date.isoformat(),
        "amount": MoneyModel.from_amount(payment.amount, code).model_dump(),
        "outstanding_balance": MoneyModel.from_amount(payment.outstanding_balance, code).model_dump(),
        "interest_earned": MoneyModel.from_amount(payment.interest_earned, code).model_dump(),
        "admin_fee": MoneyModel.from_amount(payment.admin_fee, code).model_dump(),
        "description": payment.description
    }


def _currency_code(system: LoanbookSystem, loan_id: str) -> str:
    try:
        return system.loan_manager.get_loan(loan_id).currency_code
    except LoanNotFound:
        return system.config.default_currency


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_payment(
    request: CreatePaymentRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Record a payment against a loan"""
    try:
        payment = system.loan_manager.record_payment(**request.model_dump())
    except LoanbookError as e:
        raise http_error(e)

    code = _currency_code(system, payment.loan_id)
    return {**payment_response(payment, code), "message": "Payment recorded successfully"}


@router.get("")
async def list_payments(
    loan_id: Optional[str] = None,
    system: LoanbookSystem = Depends(get_system)
):
    """List payments, optionally for one loan"""
    payments = system.loan_manager.list_payments(loan_id=loan_id)
    codes = {}
    result = []
    for payment in payments:
        if payment.loan_id not in codes:
            codes[payment.loan_id] = _currency_code(system, payment.loan_id)
        result.append(payment_response(payment, codes[payment.loan_id]))
    return {"payments": result, "count": len(result)}


@router.get("/{payment_id}")
async def get_payment(
    payment_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Get payment by ID"""
    try:
        payment = system.loan_manager.get_payment(payment_id)
    except LoanbookError as e:
        raise http_error(e)
    return payment_response(payment, _currency_code(system, payment.loan_id))


@router.put("/{payment_id}")
async def update_payment(
    payment_id: str,
    request: UpdatePaymentRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Edit a payment; an amount change moves the loan balance by the difference"""
    try:
        payment = system.loan_manager.update_payment(payment_id, **request.model_dump(exclude_unset=True))
    except LoanbookError as e:
        raise http_error(e)

    code = _currency_code(system, payment.loan_id)
    return {**payment_response(payment, code), "message": "Payment updated successfully"}


@router.delete("/{payment_id}")
async def delete_payment(
    payment_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Delete a payment and restore its amount to the loan balance"""
    try:
        payment = system.loan_manager.delete_payment(payment_id)
    except LoanbookError as e:
        raise http_error(e)

    response = {"payment_id": payment_id, "loan_id": payment.loan_id,
                "message": "Payment deleted successfully"}
    try:
        loan = system.loan_manager.get_loan(payment.loan_id)
        response["outstanding_balance"] = MoneyModel.from_amount(
            loan.outstanding_balance, loan.currency_code
        ).model_dump()
    except LoanNotFound:
        pass
    return response
