"""
Transaction Ledger Module

Per-entity append-only record of completed operations. Accounts own one
ledger each; loans keep a separate one for their payments.

Entries are immutable apart from the reversed flag, which can be set once
and never touches a balance. A real reversal has to be posted as a new
offsetting entry.
"""

import itertools
import threading
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .currency import Currency
from .exceptions import NotFoundError, StateError, ValidationError


class TransactionType(Enum):
    """Kinds of ledger entries"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    INTEREST = "interest"
    FEE = "fee"
    LOAN_DISBURSEMENT = "loan_disbursement"
    LOAN_PAYMENT = "loan_payment"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    TransactionType.DEPOSIT: "Deposit",
    TransactionType.WITHDRAWAL: "Withdrawal",
    TransactionType.TRANSFER_IN: "Transfer In",
    TransactionType.TRANSFER_OUT: "Transfer Out",
    TransactionType.INTEREST: "Interest Credit",
    TransactionType.FEE: "Fee Charge",
    TransactionType.LOAN_DISBURSEMENT: "Loan Disbursement",
    TransactionType.LOAN_PAYMENT: "Loan Payment",
}

# Kinds counted as credits/debits on statements
CREDIT_TYPES = frozenset({
    TransactionType.DEPOSIT,
    TransactionType.TRANSFER_IN,
    TransactionType.INTEREST,
})
DEBIT_TYPES = frozenset({
    TransactionType.WITHDRAWAL,
    TransactionType.TRANSFER_OUT,
    TransactionType.FEE,
})


class ReferenceNumberGenerator:
    """
    Reference numbers of the form TXN<YYYYMMDDHHMMSS><sequence>.

    The sequence is process-wide and monotonic, so two entries created in
    the same second still get distinct references.
    """

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self, timestamp: datetime) -> str:
        with self._lock:
            sequence = next(self._counter)
        return f"TXN{timestamp:%Y%m%d%H%M%S}{sequence:08d}"


default_reference_generator = ReferenceNumberGenerator()


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry"""
    transaction_id: int
    owner_id: str                       # Account (or loan) that owns the ledger
    transaction_type: TransactionType
    amount: Decimal                     # Always positive; direction comes from the type
    currency: Currency
    timestamp: datetime
    description: str
    balance_after: Decimal
    reference_number: str
    related_id: Optional[str] = None    # Counterparty account or loan
    reversed: bool = False

    def mark_reversed(self) -> None:
        """Flag the entry as reversed. Balances are left untouched."""
        if self.reversed:
            raise StateError(
                f"Transaction {self.transaction_id} on {self.owner_id} is already reversed"
            )
        object.__setattr__(self, 'reversed', True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "owner_id": self.owner_id,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "currency": self.currency.code,
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
            "balance_after": str(self.balance_after),
            "reference_number": self.reference_number,
            "related_id": self.related_id,
            "reversed": self.reversed,
        }


class Ledger:
    """
    Append-only ordered sequence of transactions for one owner.

    Callers append while holding the owner's exclusive lock; readers get
    copies and may run concurrently with an append.
    """

    def __init__(
        self,
        owner_id: str,
        currency: Currency,
        reference_generator: Optional[ReferenceNumberGenerator] = None
    ):
        self.owner_id = owner_id
        self.currency = currency
        self._entries: List[Transaction] = []
        self._next_id = 1
        self._references = reference_generator or default_reference_generator

    def append(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        balance_after: Decimal,
        description: str,
        timestamp: datetime,
        related_id: Optional[str] = None
    ) -> Transaction:
        """Record a completed operation and return the new entry"""
        transaction = Transaction(
            transaction_id=self._next_id,
            owner_id=self.owner_id,
            transaction_type=transaction_type,
            amount=amount,
            currency=self.currency,
            timestamp=timestamp,
            description=description,
            balance_after=balance_after,
            reference_number=self._references.next(timestamp),
            related_id=related_id
        )
        self._entries.append(transaction)
        self._next_id += 1
        return transaction

    def entries(self) -> List[Transaction]:
        """All entries in creation order"""
        return list(self._entries)

    def get(self, transaction_id: int) -> Transaction:
        # Ids are dense and start at 1
        if 1 <= transaction_id <= len(self._entries):
            return self._entries[transaction_id - 1]
        raise NotFoundError("transaction", f"{self.owner_id}#{transaction_id}")

    def last(self) -> Optional[Transaction]:
        return self._entries[-1] if self._entries else None

    def history(self, start: date, end: date) -> List[Transaction]:
        """
        Entries whose timestamp date lies within [start, end], inclusive.

        Raises:
            ValidationError: If start is after end
        """
        if start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")
        return [t for t in self._entries if start <= t.timestamp.date() <= end]

    def total_since(self, moment: datetime) -> Decimal:
        """Sum of entry amounts strictly after the given moment"""
        return sum(
            (t.amount for t in self._entries if t.timestamp > moment),
            Decimal('0')
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.entries())
