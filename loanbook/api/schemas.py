"""
Pydantic schemas for API requests and responses
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from ..currency import format_money, round_money


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (USD, EUR, etc.)")
    display: str = Field(..., description="Amount formatted with the currency symbol")

    @classmethod
    def from_amount(cls, amount: Decimal, currency_code: str) -> 'MoneyModel':
        return cls(
            amount=str(round_money(amount)),
            currency=currency_code,
            display=format_money(amount, currency_code)
        )


# Client schemas
class CreateClientRequest(BaseModel):
    name: str
    client_id: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    national_id: Optional[str] = None
    passport: Optional[str] = None


class UpdateClientRequest(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    national_id: Optional[str] = None
    passport: Optional[str] = None


# Loan schemas
class CreateLoanRequest(BaseModel):
    client_id: str
    principal: str = Field(..., description="Decimal amount as string")
    annual_interest_rate: str = Field(..., description="Annual rate as a decimal string, e.g. 0.12")
    term_count: int = Field(..., description="Number of monthly installments")
    start_date: str = Field(..., description="ISO date string")
    admin_fee_rate: str = Field("0", description="One-time fee as a fraction of principal")
    currency_code: Optional[str] = None
    amortization_policy: Optional[str] = Field(
        None, description="equal_installment, equal_principal or simple_interest"
    )
    loan_id: Optional[str] = None


class UpdateLoanRequest(BaseModel):
    client_id: Optional[str] = None
    principal: Optional[str] = None
    annual_interest_rate: Optional[str] = None
    term_count: Optional[int] = None
    start_date: Optional[str] = None
    admin_fee_rate: Optional[str] = None
    currency_code: Optional[str] = None
    amortization_policy: Optional[str] = None


# Payment schemas
class CreatePaymentRequest(BaseModel):
    loan_id: str
    amount: str = Field(..., description="Decimal amount as string")
    payment_date: Optional[str] = None  # ISO date string, defaults to today
    term_number: Optional[int] = None
    scheduled_date: Optional[str] = None
    description: str = ""
    payment_id: Optional[str] = None


class UpdatePaymentRequest(BaseModel):
    amount: Optional[str] = None
    payment_date: Optional[str] = None
    scheduled_date: Optional[str] = None
    description: Optional[str] = None
