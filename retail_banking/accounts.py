"""
Account Management Module

Accounts hold a single authoritative balance, a status and the limits of
their product variant. Savings, checking and business accounts share one
class; what differs between them lives in an AccountPolicy value.

Every balance change appends exactly one ledger entry whose balance_after
is the new balance. Account methods do not lock: the registry holds the
account's exclusive lock around every call that mutates it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock, SystemClock
from .currency import AmountLike, Currency, quantize, to_decimal
from .exceptions import LimitExceededError, StateError, ValidationError
from .ledger import Ledger, Transaction, TransactionType
from .logging_config import get_logger, log_action


logger = get_logger("retail_banking.accounts")


class AccountType(Enum):
    """Account product variants"""
    SAVINGS = "savings"
    CHECKING = "checking"
    BUSINESS = "business"


class AccountStatus(Enum):
    """Account lifecycle states"""
    ACTIVE = "active"          # Normal operation
    FROZEN = "frozen"          # Blocked, reversible
    SUSPENDED = "suspended"    # Blocked for deposits, reversible
    CLOSED = "closed"          # Terminal


@dataclass(frozen=True)
class AccountPolicy:
    """Limits, fee and withdrawal rule of one account variant"""
    minimum_balance: Decimal
    daily_limit: Decimal
    monthly_limit: Decimal
    maintenance_fee: Decimal
    overdraft_limit: Optional[Decimal] = None

    def allows_withdrawal(self, balance: Decimal, amount: Decimal) -> bool:
        """Sufficiency rule: may `amount` leave an account holding `balance`?"""
        remaining = balance - amount
        if remaining >= self.minimum_balance:
            return True
        return self.overdraft_limit is not None and remaining >= -self.overdraft_limit


ACCOUNT_POLICIES: Dict[AccountType, AccountPolicy] = {
    AccountType.SAVINGS: AccountPolicy(
        minimum_balance=Decimal('500'),
        daily_limit=Decimal('5000'),
        monthly_limit=Decimal('50000'),
        maintenance_fee=Decimal('5'),
    ),
    AccountType.CHECKING: AccountPolicy(
        minimum_balance=Decimal('100'),
        daily_limit=Decimal('10000'),
        monthly_limit=Decimal('100000'),
        maintenance_fee=Decimal('10'),
        overdraft_limit=Decimal('1000'),
    ),
    AccountType.BUSINESS: AccountPolicy(
        minimum_balance=Decimal('2500'),
        daily_limit=Decimal('50000'),
        monthly_limit=Decimal('500000'),
        maintenance_fee=Decimal('25'),
    ),
}

DEFAULT_MAX_TRANSACTION_AMOUNT = Decimal('1000000')
DEFAULT_INTEREST_PRECISION = 4


def _same_month(first: date, second: date) -> bool:
    return (first.year, first.month) == (second.year, second.month)


@dataclass
class Account:
    """
    Bank account with its own ledger.

    The monthly accumulator is reset lazily: it reads as zero once the
    clock has moved into a calendar month other than the one of the last
    recorded operation.
    """
    account_id: str
    customer_id: str
    account_type: AccountType
    currency: Currency
    created_at: datetime
    clock: Clock = field(default_factory=SystemClock, repr=False, compare=False)
    balance: Decimal = Decimal('0')
    status: AccountStatus = AccountStatus.ACTIVE
    daily_limit: Optional[Decimal] = None
    monthly_limit: Optional[Decimal] = None
    max_transaction_amount: Decimal = DEFAULT_MAX_TRANSACTION_AMOUNT
    interest_rate: Optional[Decimal] = None      # Annual percent, savings only
    interest_precision: int = DEFAULT_INTEREST_PRECISION
    business_name: Optional[str] = None
    tax_id: Optional[str] = None
    checks_issued: int = 0                       # Checking only
    monthly_total: Decimal = Decimal('0')
    last_activity_date: Optional[date] = None
    last_interest_credit: Optional[date] = None
    ledger: Ledger = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.daily_limit is None:
            self.daily_limit = self.policy.daily_limit
        if self.monthly_limit is None:
            self.monthly_limit = self.policy.monthly_limit
        if self.ledger is None:
            self.ledger = Ledger(self.account_id, self.currency)
        elif self.ledger.currency != self.currency:
            raise ValidationError("Ledger currency must match account currency")
        if self.account_type == AccountType.BUSINESS and not (self.business_name and self.tax_id):
            raise ValidationError("Business name and tax ID required for business account")

    def __setattr__(self, name, value):
        if name == 'currency' and 'currency' in self.__dict__:
            raise AttributeError("Account currency cannot change after creation")
        super().__setattr__(name, value)

    @property
    def policy(self) -> AccountPolicy:
        return ACCOUNT_POLICIES[self.account_type]

    @property
    def minimum_balance(self) -> Decimal:
        return self.policy.minimum_balance

    @property
    def maintenance_fee(self) -> Decimal:
        return self.policy.maintenance_fee

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self.status == AccountStatus.CLOSED

    def current_monthly_total(self, today: Optional[date] = None) -> Decimal:
        """Amount accumulated in the current calendar month"""
        today = today or self.clock.now().date()
        if self.last_activity_date is None or not _same_month(self.last_activity_date, today):
            return Decimal('0')
        return self.monthly_total

    # Validation chain, fail-fast in this order

    def validate_amount(self, amount: AmountLike) -> Decimal:
        """
        Amount must lie within (0, max] and be a whole number of the
        currency's smallest unit; returns it as a Decimal
        """
        amount = to_decimal(amount)
        if amount <= 0 or amount > self.max_transaction_amount:
            raise ValidationError(f"Invalid transaction amount: {amount}")
        if amount % self.currency.smallest_unit != 0:
            raise ValidationError(
                f"Amount {amount} is finer than the smallest {self.currency.code} unit"
            )
        return amount

    def _check_not_blocked(self) -> None:
        if self.status == AccountStatus.FROZEN:
            raise StateError(f"Account {self.account_id} is frozen")
        if self.status == AccountStatus.CLOSED:
            raise StateError(f"Account {self.account_id} is closed")

    def _check_limits(self, amount: Decimal) -> None:
        if amount > self.daily_limit:
            raise LimitExceededError(
                f"Amount {amount} exceeds daily transaction limit {self.daily_limit}"
            )
        if self.current_monthly_total() + amount > self.monthly_limit:
            raise LimitExceededError(
                f"Amount {amount} exceeds monthly transaction limit {self.monthly_limit}"
            )

    def validate_withdrawal(self, amount: Decimal) -> None:
        """Status, sufficiency, then daily and monthly limits"""
        self._check_not_blocked()
        if not self.policy.allows_withdrawal(self.balance, amount):
            raise LimitExceededError(
                f"Insufficient funds. Balance: {self.balance}, Attempted: {amount}, "
                f"Min Balance: {self.minimum_balance}"
            )
        self._check_limits(amount)

    def validate_deposit(self, amount: Decimal) -> None:
        """Status, then daily and monthly limits. Deposits need an active account."""
        self._check_not_blocked()
        if self.status != AccountStatus.ACTIVE:
            raise StateError(f"Account {self.account_id} is not active: {self.status.value}")
        self._check_limits(amount)

    def issue_check(self) -> int:
        """Count a check written against a checking account; returns its number"""
        if self.account_type != AccountType.CHECKING:
            raise ValidationError(f"Account {self.account_id} does not issue checks")
        self._check_not_blocked()
        self.checks_issued += 1
        log_action(
            logger, "info", f"Check #{self.checks_issued} issued on {self.account_id}",
            action="issue_check", resource=f"account:{self.account_id}",
            extra={"checks_issued": self.checks_issued}
        )
        return self.checks_issued

    def can_receive(self) -> bool:
        """Whether incoming transfers and disbursements may be credited"""
        return self.status not in (AccountStatus.FROZEN, AccountStatus.CLOSED)

    # Mutations

    def _post(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        delta: Decimal,
        description: str,
        related_id: Optional[str] = None
    ) -> Transaction:
        """Apply a balance change and record it; the only place balance moves"""
        now = self.clock.now()
        today = now.date()
        monthly = self.current_monthly_total(today)

        self.balance = self.balance + delta
        transaction = self.ledger.append(
            transaction_type=transaction_type,
            amount=amount,
            balance_after=self.balance,
            description=description,
            timestamp=now,
            related_id=related_id
        )
        self.monthly_total = monthly + amount
        self.last_activity_date = today

        log_action(
            logger, "info", f"{transaction_type.display_name} of {amount} on {self.account_id}",
            action=transaction_type.value, resource=f"account:{self.account_id}",
            extra={
                "amount": str(amount),
                "currency": self.currency.code,
                "balance_after": str(self.balance),
                "reference": transaction.reference_number,
                "related_id": related_id
            }
        )
        return transaction

    def record_opening_deposit(self, amount: Decimal) -> Optional[Transaction]:
        """Record an opening balance as the first ledger entry"""
        if amount < 0:
            raise ValidationError(f"Initial balance cannot be negative: {amount}")
        if amount == 0:
            return None
        return self._post(TransactionType.DEPOSIT, amount, amount, "Initial Deposit")

    def deposit(self, amount: AmountLike, description: Optional[str] = None) -> Transaction:
        """Deposit funds after running the deposit validation chain"""
        amount = self.validate_amount(amount)
        self.validate_deposit(amount)
        return self._post(TransactionType.DEPOSIT, amount, amount, description or "Deposit")

    def withdraw(self, amount: AmountLike, description: Optional[str] = None) -> Transaction:
        """Withdraw funds after running the full validation chain"""
        amount = self.validate_amount(amount)
        self.validate_withdrawal(amount)
        return self._post(TransactionType.WITHDRAWAL, amount, -amount, description or "Withdrawal")

    def debit_transfer(self, amount: Decimal, to_account_id: str, description: str) -> Transaction:
        """Transfer-out leg; the transfer protocol validates beforehand"""
        return self._post(TransactionType.TRANSFER_OUT, amount, -amount, description, to_account_id)

    def credit_transfer(self, amount: Decimal, from_account_id: str, description: str) -> Transaction:
        """Transfer-in leg"""
        return self._post(TransactionType.TRANSFER_IN, amount, amount, description, from_account_id)

    def credit_loan_disbursement(self, amount: Decimal, loan_id: str) -> Transaction:
        """Credit loan principal to the account"""
        if not self.can_receive():
            raise StateError(f"Account {self.account_id} cannot receive funds: {self.status.value}")
        return self._post(
            TransactionType.LOAN_DISBURSEMENT, amount, amount,
            f"Loan Disbursement - {loan_id}", loan_id
        )

    def credit_monthly_interest(self) -> Optional[Transaction]:
        """
        Credit one month of interest at most once per calendar month.

        Returns:
            The interest entry, or None when interest was already credited
            this month or would not be positive
        """
        if self.account_type != AccountType.SAVINGS:
            raise ValidationError(f"Account {self.account_id} does not earn interest")

        today = self.clock.now().date()
        if self.last_interest_credit is not None and _same_month(self.last_interest_credit, today):
            return None

        rate = self.interest_rate or Decimal('0')
        # Currencies without minor units accrue whole units only
        places = self.interest_precision if self.currency.precision else 0
        interest = quantize(self.balance * (rate / Decimal('100')) / Decimal('12'), places)
        if interest <= 0:
            return None

        transaction = self._post(
            TransactionType.INTEREST, interest, interest,
            f"Monthly Interest @ {rate}%"
        )
        self.last_interest_credit = today
        return transaction

    def charge_maintenance_fee(self) -> Optional[Transaction]:
        """Deduct the variant's fee if the balance covers it"""
        fee = self.maintenance_fee
        if self.balance < fee:
            return None
        return self._post(TransactionType.FEE, fee, -fee, "Monthly Maintenance Fee")

    # Status transitions

    def _transition(self, new_status: AccountStatus) -> None:
        old_status = self.status
        self.status = new_status
        log_action(
            logger, "info", f"Account {self.account_id} {old_status.value} -> {new_status.value}",
            action="status_change", resource=f"account:{self.account_id}",
            extra={"old_status": old_status.value, "new_status": new_status.value}
        )

    def _check_open(self) -> None:
        if self.status == AccountStatus.CLOSED:
            raise StateError(f"Account {self.account_id} is closed")

    def freeze(self) -> None:
        self._check_open()
        self._transition(AccountStatus.FROZEN)

    def unfreeze(self) -> None:
        self._check_open()
        if self.status != AccountStatus.FROZEN:
            raise StateError(f"Account {self.account_id} is not frozen")
        self._transition(AccountStatus.ACTIVE)

    def suspend(self) -> None:
        self._check_open()
        self._transition(AccountStatus.SUSPENDED)

    def reactivate(self) -> None:
        self._check_open()
        if self.status != AccountStatus.SUSPENDED:
            raise StateError(f"Account {self.account_id} is not suspended")
        self._transition(AccountStatus.ACTIVE)

    def close(self) -> None:
        """Close the account. Only a zero balance may be closed."""
        self._check_open()
        if self.balance != 0:
            raise StateError(
                f"Cannot close account {self.account_id} with non-zero balance: {self.balance}"
            )
        self._transition(AccountStatus.CLOSED)

    def transaction_history(self, start: date, end: date) -> List[Transaction]:
        return self.ledger.history(start, end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "customer_id": self.customer_id,
            "account_type": self.account_type.value,
            "currency": self.currency.code,
            "balance": str(self.balance),
            "status": self.status.value,
            "daily_limit": str(self.daily_limit),
            "monthly_limit": str(self.monthly_limit),
            "minimum_balance": str(self.minimum_balance),
            "interest_rate": str(self.interest_rate) if self.interest_rate is not None else None,
            "business_name": self.business_name,
            "tax_id": self.tax_id,
            "checks_issued": self.checks_issued,
            "created_at": self.created_at.isoformat(),
            "transaction_count": len(self.ledger),
        }
