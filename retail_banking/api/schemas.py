"""
Pydantic schemas for API requests
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


# Customer schemas
class RegisterCustomerRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    password: str
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None


class AuthenticateRequest(BaseModel):
    password: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str


# Account schemas
class OpenAccountRequest(BaseModel):
    customer_id: str
    password: str
    account_type: str = Field(..., description="Account type (savings, checking, business)")
    initial_balance: str = Field("0", description="Decimal amount as string")
    currency: str = Field("USD", description="Currency code")
    business_name: Optional[str] = None
    tax_id: Optional[str] = None
    interest_rate: Optional[str] = None  # Annual percent as string


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class TransferRequest(BaseModel):
    from_account_id: str
    to_account_id: str
    amount: str = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


# Loan schemas
class LoanApplicationRequest(BaseModel):
    account_id: str
    principal: str = Field(..., description="Decimal amount as string")
    annual_rate: str = Field(..., description="Annual percent rate as string")
    term_months: int = Field(..., gt=0)


class LoanPaymentRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
