"""
Account and transfer endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import get_bank
from .schemas import AmountRequest, OpenAccountRequest, TransferRequest
from ..bank import Bank


router = APIRouter()
transfers_router = APIRouter()


def _date_range(bank: Bank, account_id: str, start: Optional[date], end: Optional[date]):
    # Default to the whole life of the account
    if start is None:
        start = bank.get_account(account_id).created_at.date()
    if end is None:
        end = bank.clock.now().date()
    return start, end


@router.post("", status_code=status.HTTP_201_CREATED)
def open_account(request: OpenAccountRequest, bank: Bank = Depends(get_bank)):
    """Open a new account"""
    account = bank.open_account(
        customer_id=request.customer_id,
        password=request.password,
        account_type=request.account_type,
        initial_balance=request.initial_balance,
        currency=request.currency,
        business_name=request.business_name,
        tax_id=request.tax_id,
        interest_rate=request.interest_rate
    )
    return {
        "account_id": account.account_id,
        "balance": str(account.balance),
        "message": "Account created successfully"
    }


@router.get("")
def list_accounts(bank: Bank = Depends(get_bank)):
    return {"accounts": [a.to_dict() for a in bank.list_accounts()]}


@router.get("/{account_id}")
def get_account(account_id: str, bank: Bank = Depends(get_bank)):
    return bank.get_account(account_id).to_dict()


@router.post("/{account_id}/deposit")
def deposit(account_id: str, request: AmountRequest, bank: Bank = Depends(get_bank)):
    transaction = bank.deposit(account_id, request.amount, request.description)
    return transaction.to_dict()


@router.post("/{account_id}/withdraw")
def withdraw(account_id: str, request: AmountRequest, bank: Bank = Depends(get_bank)):
    transaction = bank.withdraw(account_id, request.amount, request.description)
    return transaction.to_dict()


@router.post("/{account_id}/freeze")
def freeze_account(account_id: str, bank: Bank = Depends(get_bank)):
    return bank.freeze_account(account_id).to_dict()


@router.post("/{account_id}/unfreeze")
def unfreeze_account(account_id: str, bank: Bank = Depends(get_bank)):
    return bank.unfreeze_account(account_id).to_dict()


@router.post("/{account_id}/suspend")
def suspend_account(account_id: str, bank: Bank = Depends(get_bank)):
    return bank.suspend_account(account_id).to_dict()


@router.post("/{account_id}/reactivate")
def reactivate_account(account_id: str, bank: Bank = Depends(get_bank)):
    return bank.reactivate_account(account_id).to_dict()


@router.post("/{account_id}/close")
def close_account(account_id: str, bank: Bank = Depends(get_bank)):
    return bank.close_account(account_id).to_dict()


@router.post("/{account_id}/checks")
def issue_check(account_id: str, bank: Bank = Depends(get_bank)):
    """Record a check issued against a checking account"""
    return {"account_id": account_id, "check_number": bank.issue_check(account_id)}


@router.get("/{account_id}/transactions")
def get_account_transactions(
    account_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    bank: Bank = Depends(get_bank)
):
    """Ledger entries dated within [start, end]"""
    start, end = _date_range(bank, account_id, start, end)
    transactions = bank.transaction_history(account_id, start, end)
    return {"transactions": [t.to_dict() for t in transactions]}


@router.post("/{account_id}/transactions/{transaction_id}/reverse")
def mark_transaction_reversed(account_id: str, transaction_id: int, bank: Bank = Depends(get_bank)):
    """Flag an entry as reversed without adjusting the balance"""
    return bank.mark_transaction_reversed(account_id, transaction_id).to_dict()


@router.get("/{account_id}/statement")
def get_statement(
    account_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    bank: Bank = Depends(get_bank)
):
    start, end = _date_range(bank, account_id, start, end)
    return bank.generate_statement(account_id, start, end).to_dict()


@transfers_router.post("", status_code=status.HTTP_201_CREATED)
def transfer(request: TransferRequest, bank: Bank = Depends(get_bank)):
    """Move funds between two accounts"""
    result = bank.transfer(
        request.from_account_id,
        request.to_account_id,
        request.amount,
        request.description
    )
    return {
        "amount": str(result.amount),
        "debit": result.debit.to_dict(),
        "credit": result.credit.to_dict(),
        "message": "Transfer completed successfully"
    }
