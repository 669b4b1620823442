"""
Reporting Module

Account statements and the bank-wide summary. Both are read-only views
built from snapshots; formatting them for display is left to callers.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .accounts import Account, AccountStatus
from .customers import Customer
from .ledger import CREDIT_TYPES, DEBIT_TYPES, Transaction
from .loans import Loan, LoanStatus


@dataclass
class AccountStatement:
    """Ledger entries of one account over a date range with totals"""
    account_id: str
    customer_name: str
    currency: str
    start: date
    end: date
    current_balance: Decimal
    transactions: List[Transaction]
    total_credits: Decimal
    total_debits: Decimal
    generated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "customer_name": self.customer_name,
            "currency": self.currency,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "current_balance": str(self.current_balance),
            "total_credits": str(self.total_credits),
            "total_debits": str(self.total_debits),
            "transactions": [t.to_dict() for t in self.transactions],
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }


@dataclass
class BankSummary:
    """Aggregate counts and balances across the directory"""
    bank_name: str
    total_customers: int
    total_accounts: int
    active_accounts: int
    accounts_by_type: Dict[str, int] = field(default_factory=dict)
    accounts_by_status: Dict[str, int] = field(default_factory=dict)
    total_active_balance: Decimal = Decimal('0')
    total_loans: int = 0
    active_loans: int = 0
    outstanding_loan_balance: Decimal = Decimal('0')
    fraud_alert_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bank_name": self.bank_name,
            "total_customers": self.total_customers,
            "total_accounts": self.total_accounts,
            "active_accounts": self.active_accounts,
            "accounts_by_type": dict(self.accounts_by_type),
            "accounts_by_status": dict(self.accounts_by_status),
            "total_active_balance": str(self.total_active_balance),
            "total_loans": self.total_loans,
            "active_loans": self.active_loans,
            "outstanding_loan_balance": str(self.outstanding_loan_balance),
            "fraud_alert_count": self.fraud_alert_count,
        }


def build_statement(
    account: Account,
    customer: Customer,
    start: date,
    end: date,
    generated_at: Optional[datetime] = None
) -> AccountStatement:
    """
    Statement for an account over [start, end].

    Credits count deposits, incoming transfers and interest; debits count
    withdrawals, outgoing transfers and fees. Loan events are listed but
    belong to neither total.
    """
    transactions = account.transaction_history(start, end)
    total_credits = sum(
        (t.amount for t in transactions if t.transaction_type in CREDIT_TYPES), Decimal('0')
    )
    total_debits = sum(
        (t.amount for t in transactions if t.transaction_type in DEBIT_TYPES), Decimal('0')
    )

    return AccountStatement(
        account_id=account.account_id,
        customer_name=customer.full_name,
        currency=account.currency.code,
        start=start,
        end=end,
        current_balance=account.balance,
        transactions=transactions,
        total_credits=total_credits,
        total_debits=total_debits,
        generated_at=generated_at
    )


def build_summary(
    bank_name: str,
    customers: Iterable[Customer],
    accounts: Iterable[Account],
    loans: Iterable[Loan],
    fraud_alert_count: int = 0
) -> BankSummary:
    customers = list(customers)
    accounts = list(accounts)
    loans = list(loans)

    active = [a for a in accounts if a.status == AccountStatus.ACTIVE]
    by_type: Dict[str, int] = {}
    for account in active:
        by_type[account.account_type.value] = by_type.get(account.account_type.value, 0) + 1
    by_status: Dict[str, int] = {}
    for account in accounts:
        by_status[account.status.value] = by_status.get(account.status.value, 0) + 1

    active_loans = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]

    return BankSummary(
        bank_name=bank_name,
        total_customers=len(customers),
        total_accounts=len(accounts),
        active_accounts=len(active),
        accounts_by_type=by_type,
        accounts_by_status=by_status,
        total_active_balance=sum((a.balance for a in active), Decimal('0')),
        total_loans=len(loans),
        active_loans=len(active_loans),
        outstanding_loan_balance=sum((loan.remaining_balance for loan in active_loans), Decimal('0')),
        fraud_alert_count=fraud_alert_count
    )
