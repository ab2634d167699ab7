"""
Loan endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .dependencies import LoanbookSystem, get_system, http_error
from .payments import payment_response
from .schemas import CreateLoanRequest, UpdateLoanRequest, MoneyModel
from ..amortization import TermEntry, ScheduleSummary, monthly_payment, summarize_schedule
from ..errors import LoanbookError
from ..loans import Loan
from ..standing import StandingReport, delinquency_notice


router = APIRouter()


def loan_response(loan: Loan) -> dict:
    code = loan.currency_code
    terms = loan.terms
    return {
        "loan_id": loan.loan_id,
        "client_id": loan.client_id,
        "state": loan.state.value,
        "currency_code": code,
        "principal": MoneyModel.from_amount(terms.principal, code).model_dump(),
        "annual_interest_rate": str(terms.annual_interest_rate),
        "term_count": terms.term_count,
        "start_date": terms.start_date.isoformat(),
        "end_date": loan.end_date.isoformat(),
        "amortization_policy": terms.amortization_policy.value,
        "admin_fee_rate": str(terms.admin_fee_rate),
        "admin_fee": MoneyModel.from_amount(terms.admin_fee, code).model_dump(),
        "admin_fee_charged": loan.admin_fee_charged,
        "monthly_payment": MoneyModel.from_amount(monthly_payment(loan), code).model_dump(),
        "outstanding_balance": MoneyModel.from_amount(loan.outstanding_balance, code).model_dump()
    }


def term_response(entry: TermEntry, code: str) -> dict:
    return {
        "term_number": entry.term_number,
        "scheduled_date": entry.scheduled_date.isoformat(),
        "principal": MoneyModel.from_amount(entry.principal, code).model_dump(),
        "interest": MoneyModel.from_amount(entry.interest, code).model_dump(),
        "admin_fee": MoneyModel.from_amount(entry.admin_fee, code).model_dump(),
        "total_due": MoneyModel.from_amount(entry.total_due, code).model_dump(),
        "beginning_balance": MoneyModel.from_amount(entry.beginning_balance, code).model_dump(),
        "ending_balance": MoneyModel.from_amount(entry.ending_balance, code).model_dump()
    }


def summary_response(summary: ScheduleSummary, code: str) -> dict:
    return {
        "term_count": summary.term_count,
        "total_principal": MoneyModel.from_amount(summary.total_principal, code).model_dump(),
        "total_interest": MoneyModel.from_amount(summary.total_interest, code).model_dump(),
        "total_admin_fee": MoneyModel.from_amount(summary.total_admin_fee, code).model_dump(),
        "total_due": MoneyModel.from_amount(summary.total_due, code).model_dump(),
        "average_payment": MoneyModel.from_amount(summary.average_payment, code).model_dump()
    }


def standing_response(report: StandingReport, code: str) -> dict:
    return {
        "as_of_date": report.as_of_date.isoformat(),
        "terms_elapsed": report.terms_elapsed,
        "terms_paid_for": report.terms_paid_for,
        "unpaid_term_count": report.unpaid_term_count,
        "is_delinquent": report.is_delinquent,
        "amount_past_due": MoneyModel.from_amount(report.amount_past_due, code).model_dump(),
        "total_paid": MoneyModel.from_amount(report.total_paid, code).model_dump(),
        "expected_cumulative_due": MoneyModel.from_amount(report.expected_cumulative_due, code).model_dump(),
        "average_payment": MoneyModel.from_amount(report.average_payment, code).model_dump(),
        "notice": delinquency_notice(report, code)
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Create a new loan"""
    try:
        loan = system.loan_manager.create_loan(**request.model_dump())
    except LoanbookError as e:
        raise http_error(e)

    return {**loan_response(loan), "message": "Loan created successfully"}


@router.get("")
async def list_loans(
    client_id: Optional[str] = None,
    system: LoanbookSystem = Depends(get_system)
):
    """List loans, optionally for one client"""
    loans = system.loan_manager.list_loans(client_id=client_id)
    return {"loans": [loan_response(loan) for loan in loans], "count": len(loans)}


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Get loan details"""
    try:
        loan = system.loan_manager.get_loan(loan_id)
    except LoanbookError as e:
        raise http_error(e)
    return loan_response(loan)


@router.put("/{loan_id}")
async def update_loan(
    loan_id: str,
    request: UpdateLoanRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Update loan terms; the balance follows a principal or fee change"""
    try:
        loan = system.loan_manager.update_loan(loan_id, **request.model_dump(exclude_unset=True))
    except LoanbookError as e:
        raise http_error(e)
    return {**loan_response(loan), "message": "Loan updated successfully"}


@router.delete("/{loan_id}")
async def delete_loan(
    loan_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Delete a loan together with its payments"""
    try:
        system.loan_manager.delete_loan(loan_id)
    except LoanbookError as e:
        raise http_error(e)
    return {"loan_id": loan_id, "message": "Loan deleted successfully"}


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(
    loan_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Get loan amortization schedule"""
    try:
        loan = system.loan_manager.get_loan(loan_id)
        schedule = system.loan_manager.get_schedule(loan_id)
    except LoanbookError as e:
        raise http_error(e)

    code = loan.currency_code
    return {
        "loan_id": loan_id,
        "schedule": [term_response(entry, code) for entry in schedule],
        "summary": summary_response(summarize_schedule(schedule), code)
    }


@router.get("/{loan_id}/standing")
async def get_loan_standing(
    loan_id: str,
    as_of: Optional[str] = Query(None, description="ISO date, defaults to today"),
    system: LoanbookSystem = Depends(get_system)
):
    """Get the loan's repayment standing"""
    try:
        loan = system.loan_manager.get_loan(loan_id)
        report = system.loan_manager.get_standing(loan_id, as_of_date=as_of)
    except LoanbookError as e:
        raise http_error(e)
    return {"loan_id": loan_id, **standing_response(report, loan.currency_code)}


@router.get("/{loan_id}/report")
async def get_loan_report(
    loan_id: str,
    as_of: Optional[str] = Query(None, description="ISO date, defaults to today"),
    system: LoanbookSystem = Depends(get_system)
):
    """Get the full loan report: schedule, totals, payments and standing"""
    try:
        report = system.loan_manager.get_loan_report(loan_id, as_of_date=as_of)
    except LoanbookError as e:
        raise http_error(e)

    code = report.loan.currency_code
    return {
        "loan": loan_response(report.loan),
        "schedule": [term_response(entry, code) for entry in report.schedule],
        "summary": summary_response(report.summary, code),
        "payments": [payment_response(p, code) for p in report.payments],
        "standing": standing_response(report.standing, code),
        "total_paid": MoneyModel.from_amount(report.total_paid, code).model_dump(),
        "total_interest_earned": MoneyModel.from_amount(report.total_interest_earned, code).model_dump(),
        "total_admin_fee_collected": MoneyModel.from_amount(report.total_admin_fee_collected, code).model_dump(),
        "notes": report.notes
    }
