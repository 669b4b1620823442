"""
Bank Registry Module

The Bank owns the directory of customers, accounts and loans, resolves ids
to entities and dispatches every operation under the right lock:

- single-account operations hold that account's lock
- transfers go through TransferService, which locks both accounts in
  canonical order
- loan payments hold the loan's lock; approval also holds the account's

Batch jobs sweep a snapshot of the directory and lock each account as
they reach it. Accounts opened while a sweep runs are not visited.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Type, TypeVar, Union

from .accounts import Account, AccountStatus, AccountType
from .clock import Clock, SystemClock
from .config import BankConfig, get_config
from .currency import AmountLike, Currency, to_decimal
from .customers import Customer
from .exceptions import (
    AuthenticationError, LimitExceededError, NotFoundError, StateError, ValidationError
)
from .fraud import FraudAlert, FraudDetector
from .ledger import Transaction
from .loans import Loan
from .logging_config import get_logger, log_action
from .reporting import AccountStatement, BankSummary, build_statement, build_summary
from .security import CredentialService, IdentifierGenerator
from .storage import (
    ACCOUNTS_TABLE, CUSTOMERS_TABLE, LOANS_TABLE, InMemoryStorage, LockManager
)
from .transfers import TransferResult, TransferService


logger = get_logger("retail_banking.bank")

E = TypeVar('E', bound=Enum)


def _coerce_enum(enum_type: Type[E], value: Union[E, str], label: str) -> E:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).lower())
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")


class Bank:
    """Registry and entry point for all banking operations"""

    def __init__(
        self,
        config: Optional[BankConfig] = None,
        storage: Optional[InMemoryStorage] = None,
        locks: Optional[LockManager] = None,
        clock: Optional[Clock] = None,
        credentials: Optional[CredentialService] = None,
        ids: Optional[IdentifierGenerator] = None
    ):
        self.config = config or get_config()
        self.storage = storage or InMemoryStorage()
        self.locks = locks or LockManager()
        self.clock = clock or SystemClock()
        self.credentials = credentials or CredentialService()
        self.ids = ids or IdentifierGenerator(self.config.account_number_start)

        self.name = self.config.bank_name
        self.max_transaction_amount = Decimal(self.config.max_transaction_amount)
        self.savings_interest_rate = Decimal(self.config.savings_interest_rate)
        self.loan_balance_ratio = Decimal(self.config.loan_balance_requirement_ratio)

        self.transfers = TransferService(
            storage=self.storage,
            locks=self.locks,
            detector=FraudDetector.from_config(self.config),
            clock=self.clock,
            alert_id_factory=self.ids.alert_id
        )

    # Customers

    def register_customer(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        date_of_birth: Optional[date] = None
    ) -> Customer:
        """Register a new customer; the password is stored only as a token"""
        customer = Customer(
            customer_id=self.ids.customer_id(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_token=self.credentials.hash(password),
            created_at=self.clock.now(),
            phone=phone,
            address=address,
            date_of_birth=date_of_birth
        )
        self.storage.insert(CUSTOMERS_TABLE, customer.customer_id, customer)

        log_action(
            logger, "info", f"New customer registered: {customer.customer_id}",
            action="register_customer", resource=f"customer:{customer.customer_id}"
        )
        return customer

    def authenticate(self, customer_id: str, password: str) -> Customer:
        """
        Check a customer's password

        Raises:
            NotFoundError: Unknown customer
            AuthenticationError: Wrong password
        """
        customer = self.get_customer(customer_id)
        if not self.credentials.verify(password, customer.password_token):
            log_action(
                logger, "warning", f"Failed authentication for {customer_id}",
                action="authentication_failed", resource=f"customer:{customer_id}"
            )
            raise AuthenticationError("Invalid password")
        return customer

    def change_password(self, customer_id: str, old_password: str, new_password: str) -> None:
        customer = self.authenticate(customer_id, old_password)
        with self.locks.acquire(customer_id):
            customer.password_token = self.credentials.hash(new_password)
        log_action(
            logger, "info", f"Password changed for {customer_id}",
            action="change_password", resource=f"customer:{customer_id}"
        )

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.storage.load(CUSTOMERS_TABLE, customer_id)
        if customer is None:
            raise NotFoundError("customer", customer_id)
        return customer

    def list_customers(self) -> List[Customer]:
        return self.storage.load_all(CUSTOMERS_TABLE)

    # Accounts

    def open_account(
        self,
        customer_id: str,
        password: str,
        account_type: Union[AccountType, str],
        initial_balance: AmountLike = Decimal('0'),
        currency: Union[Currency, str] = Currency.USD,
        business_name: Optional[str] = None,
        tax_id: Optional[str] = None,
        interest_rate: Optional[AmountLike] = None
    ) -> Account:
        """
        Open an account for an authenticated customer.

        A positive initial balance is recorded as an "Initial Deposit" entry.
        Savings accounts get the configured interest rate unless one is given.

        Raises:
            NotFoundError: Unknown customer
            AuthenticationError: Wrong password
            ValidationError: Bad type, currency, balance or missing business details
        """
        self.authenticate(customer_id, password)

        account_type = _coerce_enum(AccountType, account_type, "account type")
        if not isinstance(currency, Currency):
            currency = Currency.from_code(str(currency))
        initial_balance = to_decimal(initial_balance)
        if initial_balance < 0:
            raise ValidationError(f"Initial balance cannot be negative: {initial_balance}")

        rate = None
        if account_type == AccountType.SAVINGS:
            rate = to_decimal(interest_rate) if interest_rate is not None else self.savings_interest_rate
            if rate < 0:
                raise ValidationError(f"Interest rate cannot be negative: {rate}")

        account = Account(
            account_id=self.ids.account_id(),
            customer_id=customer_id,
            account_type=account_type,
            currency=currency,
            created_at=self.clock.now(),
            clock=self.clock,
            max_transaction_amount=self.max_transaction_amount,
            interest_rate=rate,
            interest_precision=self.config.interest_calculation_precision,
            business_name=business_name,
            tax_id=tax_id
        )
        account.record_opening_deposit(initial_balance)
        self.storage.insert(ACCOUNTS_TABLE, account.account_id, account)

        log_action(
            logger, "info", f"New account created: {account.account_id} for customer: {customer_id}",
            action="open_account", resource=f"account:{account.account_id}",
            extra={
                "account_type": account_type.value,
                "currency": currency.code,
                "initial_balance": str(initial_balance)
            }
        )
        return account

    def get_account(self, account_id: str) -> Account:
        account = self.storage.load(ACCOUNTS_TABLE, account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        return account

    def list_accounts(self) -> List[Account]:
        return sorted(self.storage.load_all(ACCOUNTS_TABLE), key=lambda a: a.account_id)

    def customer_accounts(self, customer_id: str) -> List[Account]:
        self.get_customer(customer_id)
        return sorted(
            self.storage.find(ACCOUNTS_TABLE, customer_id=customer_id),
            key=lambda a: a.account_id
        )

    def deposit(self, account_id: str, amount: AmountLike, description: Optional[str] = None) -> Transaction:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            return account.deposit(amount, description)

    def withdraw(self, account_id: str, amount: AmountLike, description: Optional[str] = None) -> Transaction:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            return account.withdraw(amount, description)

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransferResult:
        return self.transfers.transfer(from_account_id, to_account_id, amount, description)

    def freeze_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            account.freeze()
        return account

    def unfreeze_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            account.unfreeze()
        return account

    def suspend_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            account.suspend()
        return account

    def reactivate_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            account.reactivate()
        return account

    def issue_check(self, account_id: str) -> int:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            return account.issue_check()

    def close_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            account.close()
        return account

    def transaction_history(self, account_id: str, start: date, end: date) -> List[Transaction]:
        return self.get_account(account_id).transaction_history(start, end)

    def mark_transaction_reversed(self, account_id: str, transaction_id: int) -> Transaction:
        """Flag a ledger entry as reversed. The balance is not adjusted."""
        account = self.get_account(account_id)
        with self.locks.acquire(account_id):
            transaction = account.ledger.get(transaction_id)
            transaction.mark_reversed()

        log_action(
            logger, "info", f"Transaction {transaction_id} on {account_id} marked reversed",
            action="mark_reversed", resource=f"account:{account_id}",
            extra={"reference": transaction.reference_number}
        )
        return transaction

    # Loans

    def apply_for_loan(
        self,
        account_id: str,
        principal: AmountLike,
        annual_rate: AmountLike,
        term_months: int
    ) -> Loan:
        """
        Create a PENDING loan linked to an account.

        The account must hold at least the configured share of the principal.
        """
        account = self.get_account(account_id)
        principal = to_decimal(principal)
        annual_rate = to_decimal(annual_rate)

        if account.balance < principal * self.loan_balance_ratio:
            raise LimitExceededError("Insufficient account balance for loan application")

        loan = Loan(
            loan_id=self.ids.loan_id(),
            account_id=account_id,
            principal=principal,
            annual_rate=annual_rate,
            term_months=int(term_months),
            currency=account.currency,
            issue_date=self.clock.now().date(),
            clock=self.clock
        )
        self.storage.insert(LOANS_TABLE, loan.loan_id, loan)

        log_action(
            logger, "info", f"Loan application submitted: {loan.loan_id}",
            action="apply_for_loan", resource=f"loan:{loan.loan_id}",
            extra={
                "account_id": account_id,
                "principal": str(principal),
                "monthly_payment": str(loan.monthly_payment)
            }
        )
        return loan

    def approve_loan(self, loan_id: str) -> Loan:
        """Approve, activate and disburse the principal to the linked account"""
        loan = self.get_loan(loan_id)
        account = self.get_account(loan.account_id)

        with self.locks.acquire(loan_id, account.account_id):
            if not account.can_receive():
                raise StateError(
                    f"Account {account.account_id} cannot receive funds: {account.status.value}"
                )
            loan.approve()
            loan.activate()
            account.credit_loan_disbursement(loan.principal, loan_id)

        log_action(
            logger, "info", f"Loan approved and disbursed: {loan_id}",
            action="approve_loan", resource=f"loan:{loan_id}",
            extra={"account_id": account.account_id, "principal": str(loan.principal)}
        )
        return loan

    def make_loan_payment(self, loan_id: str, amount: AmountLike) -> Transaction:
        loan = self.get_loan(loan_id)
        with self.locks.acquire(loan_id):
            return loan.make_payment(amount)

    def get_loan(self, loan_id: str) -> Loan:
        loan = self.storage.load(LOANS_TABLE, loan_id)
        if loan is None:
            raise NotFoundError("loan", loan_id)
        return loan

    def list_loans(self) -> List[Loan]:
        return self.storage.load_all(LOANS_TABLE)

    def customer_loans(self, customer_id: str) -> List[Loan]:
        account_ids = {a.account_id for a in self.customer_accounts(customer_id)}
        return [loan for loan in self.list_loans() if loan.account_id in account_ids]

    # Batch jobs

    def credit_monthly_interest(self) -> int:
        """Credit interest on every active savings account; returns entries posted"""
        credited = 0
        for account in self.list_accounts():
            if account.account_type != AccountType.SAVINGS:
                continue
            with self.locks.acquire(account.account_id):
                if account.status != AccountStatus.ACTIVE:
                    continue
                if account.credit_monthly_interest() is not None:
                    credited += 1

        log_action(
            logger, "info", f"Monthly interest credited to {credited} savings accounts",
            action="credit_monthly_interest", extra={"accounts_credited": credited}
        )
        return credited

    def charge_maintenance_fees(self) -> int:
        """
        Charge every active account its variant's fee if the balance covers it.

        There is no once-per-period guard: running this twice in a month
        charges twice.
        """
        charged = 0
        for account in self.list_accounts():
            with self.locks.acquire(account.account_id):
                if account.status != AccountStatus.ACTIVE:
                    continue
                if account.charge_maintenance_fee() is not None:
                    charged += 1

        log_action(
            logger, "info", f"Maintenance fees charged to {charged} accounts",
            action="charge_maintenance_fees", extra={"accounts_charged": charged}
        )
        return charged

    def run_daily_maintenance(self) -> Dict[str, int]:
        return {
            "interest_credited": self.credit_monthly_interest(),
            "fees_charged": self.charge_maintenance_fees(),
        }

    # Reporting

    def generate_statement(self, account_id: str, start: date, end: date) -> AccountStatement:
        account = self.get_account(account_id)
        customer = self.get_customer(account.customer_id)
        return build_statement(account, customer, start, end, generated_at=self.clock.now())

    def fraud_alerts(self) -> List[FraudAlert]:
        return self.transfers.fraud_alerts()

    def summary(self) -> BankSummary:
        return build_summary(
            bank_name=self.name,
            customers=self.list_customers(),
            accounts=self.list_accounts(),
            loans=self.list_loans(),
            fraud_alert_count=len(self.fraud_alerts())
        )
