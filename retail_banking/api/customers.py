"""
Customer endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_bank
from .schemas import AuthenticateRequest, ChangePasswordRequest, RegisterCustomerRequest
from ..bank import Bank


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def register_customer(request: RegisterCustomerRequest, bank: Bank = Depends(get_bank)):
    """Register a new customer"""
    customer = bank.register_customer(
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        password=request.password,
        phone=request.phone,
        address=request.address,
        date_of_birth=request.date_of_birth
    )
    return {
        "customer_id": customer.customer_id,
        "message": "Customer registered successfully"
    }


@router.get("")
def list_customers(bank: Bank = Depends(get_bank)):
    return {"customers": [c.to_dict() for c in bank.list_customers()]}


@router.get("/{customer_id}")
def get_customer(customer_id: str, bank: Bank = Depends(get_bank)):
    return bank.get_customer(customer_id).to_dict()


@router.post("/{customer_id}/authenticate")
def authenticate(customer_id: str, request: AuthenticateRequest, bank: Bank = Depends(get_bank)):
    """Check a customer's password"""
    customer = bank.authenticate(customer_id, request.password)
    return {"customer_id": customer.customer_id, "authenticated": True}


@router.post("/{customer_id}/password")
def change_password(customer_id: str, request: ChangePasswordRequest, bank: Bank = Depends(get_bank)):
    bank.change_password(customer_id, request.old_password, request.new_password)
    return {"message": "Password changed successfully"}


@router.get("/{customer_id}/accounts")
def get_customer_accounts(customer_id: str, bank: Bank = Depends(get_bank)):
    return {"accounts": [a.to_dict() for a in bank.customer_accounts(customer_id)]}


@router.get("/{customer_id}/loans")
def get_customer_loans(customer_id: str, bank: Bank = Depends(get_bank)):
    return {"loans": [loan.to_dict() for loan in bank.customer_loans(customer_id)]}
