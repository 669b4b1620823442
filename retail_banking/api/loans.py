"""
Loan endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_bank
from .schemas import LoanApplicationRequest, LoanPaymentRequest
from ..bank import Bank


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def apply_for_loan(request: LoanApplicationRequest, bank: Bank = Depends(get_bank)):
    """Submit a loan application"""
    loan = bank.apply_for_loan(
        account_id=request.account_id,
        principal=request.principal,
        annual_rate=request.annual_rate,
        term_months=request.term_months
    )
    return {
        "loan_id": loan.loan_id,
        "status": loan.status.value,
        "monthly_payment": str(loan.monthly_payment),
        "message": "Loan application submitted"
    }


@router.get("")
def list_loans(bank: Bank = Depends(get_bank)):
    return {"loans": [loan.to_dict() for loan in bank.list_loans()]}


@router.get("/{loan_id}")
def get_loan(loan_id: str, bank: Bank = Depends(get_bank)):
    return bank.get_loan(loan_id).to_dict()


@router.post("/{loan_id}/approve")
def approve_loan(loan_id: str, bank: Bank = Depends(get_bank)):
    """Approve a pending loan and disburse the principal"""
    return bank.approve_loan(loan_id).to_dict()


@router.post("/{loan_id}/payments")
def make_payment(loan_id: str, request: LoanPaymentRequest, bank: Bank = Depends(get_bank)):
    payment = bank.make_loan_payment(loan_id, request.amount)
    loan = bank.get_loan(loan_id)
    return {
        "payment": payment.to_dict(),
        "remaining_balance": str(loan.remaining_balance),
        "status": loan.status.value
    }


@router.get("/{loan_id}/payments")
def get_payments(loan_id: str, bank: Bank = Depends(get_bank)):
    loan = bank.get_loan(loan_id)
    return {"payments": [p.to_dict() for p in loan.payment_history()]}


@router.get("/{loan_id}/schedule")
def get_schedule(loan_id: str, bank: Bank = Depends(get_bank)):
    """Projected repayment schedule at the fixed monthly payment"""
    loan = bank.get_loan(loan_id)
    return {
        "schedule": [
            {
                "payment_number": row.payment_number,
                "due_date": row.due_date.isoformat(),
                "payment_amount": str(row.payment_amount),
                "interest_amount": str(row.interest_amount),
                "principal_amount": str(row.principal_amount),
                "remaining_balance": str(row.remaining_balance),
            }
            for row in loan.amortization_schedule()
        ]
    }
