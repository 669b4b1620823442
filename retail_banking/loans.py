"""
Loan Module

Fixed-payment amortization and the loan lifecycle:
PENDING -> APPROVED -> ACTIVE -> PAID_OFF, with DEFAULTED reachable from
ACTIVE. Each loan keeps its own payment ledger, separate from the ledger
of the account it is linked to.

Overpayments shorten the loan but never recompute the schedule: the
monthly payment stays fixed and the due date always advances one month.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock, SystemClock
from .currency import AmountLike, Currency, to_decimal
from .exceptions import StateError, ValidationError
from .ledger import Ledger, Transaction, TransactionType
from .logging_config import get_logger, log_action


logger = get_logger("retail_banking.loans")


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "pending"        # Applied for, awaiting approval
    APPROVED = "approved"      # Approved, not yet disbursed
    ACTIVE = "active"          # Disbursed and in repayment
    PAID_OFF = "paid_off"      # Fully repaid
    DEFAULTED = "defaulted"    # In default


def monthly_rate(annual_rate: Decimal) -> Decimal:
    """Periodic rate from an annual percent rate"""
    return annual_rate / Decimal('100') / Decimal('12')


def calculate_monthly_payment(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    """
    Fixed monthly payment for an amortizing loan.

    Standard formula: P * r(1+r)^n / ((1+r)^n - 1), where r is the monthly
    rate. A zero rate degenerates to an even split of the principal.
    """
    if term_months <= 0:
        raise ValidationError(f"Loan term must be positive: {term_months}")

    r = monthly_rate(annual_rate)
    if r == 0:
        return principal / Decimal(term_months)

    factor = (Decimal('1') + r) ** term_months
    return principal * r * factor / (factor - Decimal('1'))


def add_months(start: date, months: int) -> date:
    """Same day `months` later, clamped to the end of shorter months"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass
class AmortizationEntry:
    """Single projected row of the repayment schedule"""
    payment_number: int
    due_date: date
    payment_amount: Decimal
    interest_amount: Decimal
    principal_amount: Decimal
    remaining_balance: Decimal


@dataclass
class Loan:
    """Loan linked to one account with its own payment ledger"""
    loan_id: str
    account_id: str
    principal: Decimal
    annual_rate: Decimal               # Annual percent, e.g. 6.5
    term_months: int
    currency: Currency
    issue_date: date
    clock: Clock = field(default_factory=SystemClock, repr=False, compare=False)
    status: LoanStatus = LoanStatus.PENDING
    monthly_payment: Decimal = None
    remaining_balance: Decimal = None
    next_payment_date: Optional[date] = None
    total_paid: Decimal = Decimal('0')
    principal_paid: Decimal = Decimal('0')
    interest_paid: Decimal = Decimal('0')
    payments: Ledger = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.principal <= 0:
            raise ValidationError(f"Loan principal must be positive: {self.principal}")
        if self.annual_rate < 0:
            raise ValidationError(f"Interest rate cannot be negative: {self.annual_rate}")
        if self.term_months <= 0:
            raise ValidationError(f"Loan term must be positive: {self.term_months}")

        if self.monthly_payment is None:
            self.monthly_payment = calculate_monthly_payment(
                self.principal, self.annual_rate, self.term_months
            )
        # A payment that only covers the first month's interest never amortizes
        if self.monthly_payment <= self.principal * self.monthly_rate:
            raise ValidationError(
                f"Loan terms do not amortize: payment {self.monthly_payment} does not "
                f"exceed the monthly interest on {self.principal}"
            )
        if self.remaining_balance is None:
            self.remaining_balance = self.principal
        if self.next_payment_date is None:
            self.next_payment_date = add_months(self.issue_date, 1)
        if self.payments is None:
            self.payments = Ledger(self.loan_id, self.currency)

    @property
    def monthly_rate(self) -> Decimal:
        return monthly_rate(self.annual_rate)

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def is_paid_off(self) -> bool:
        return self.status == LoanStatus.PAID_OFF

    def _transition(self, expected: LoanStatus, new_status: LoanStatus) -> None:
        if self.status != expected:
            raise StateError(
                f"Loan {self.loan_id} must be {expected.value} to become "
                f"{new_status.value}, is {self.status.value}"
            )
        self.status = new_status
        log_action(
            logger, "info", f"Loan {self.loan_id} {expected.value} -> {new_status.value}",
            action="loan_status_change", resource=f"loan:{self.loan_id}",
            extra={"old_status": expected.value, "new_status": new_status.value}
        )

    def approve(self) -> None:
        self._transition(LoanStatus.PENDING, LoanStatus.APPROVED)

    def activate(self) -> None:
        self._transition(LoanStatus.APPROVED, LoanStatus.ACTIVE)

    def mark_defaulted(self) -> None:
        self._transition(LoanStatus.ACTIVE, LoanStatus.DEFAULTED)

    def make_payment(self, amount: AmountLike) -> Transaction:
        """
        Apply a payment of at least the fixed monthly amount.

        Args:
            amount: Payment amount

        Returns:
            The LOAN_PAYMENT entry on the loan's payment ledger

        Raises:
            StateError: Loan is not active or nothing remains to be paid
            ValidationError: Amount is below the monthly payment
        """
        amount = to_decimal(amount)
        if self.status != LoanStatus.ACTIVE or self.remaining_balance <= 0:
            raise StateError(f"Loan {self.loan_id} is not accepting payments: {self.status.value}")
        if amount < self.monthly_payment:
            raise ValidationError(
                f"Payment {amount} is below the monthly payment {self.monthly_payment}"
            )

        interest = self.remaining_balance * self.monthly_rate
        principal_portion = amount - interest
        remaining = max(Decimal('0'), self.remaining_balance - principal_portion)
        # Residue below the smallest currency unit counts as paid
        if remaining < self.currency.smallest_unit / 2:
            remaining = Decimal('0')

        self.remaining_balance = remaining
        self.total_paid += amount
        self.interest_paid += interest
        self.principal_paid += principal_portion
        self.next_payment_date = add_months(self.next_payment_date, 1)

        payment = self.payments.append(
            transaction_type=TransactionType.LOAN_PAYMENT,
            amount=amount,
            balance_after=self.remaining_balance,
            description=(
                f"Loan Payment - Principal: {principal_portion:.2f}, Interest: {interest:.2f}"
            ),
            timestamp=self.clock.now(),
            related_id=self.loan_id
        )

        if self.remaining_balance == 0:
            self.status = LoanStatus.PAID_OFF

        log_action(
            logger, "info", f"Loan payment of {amount} on {self.loan_id}",
            action="loan_payment", resource=f"loan:{self.loan_id}",
            extra={
                "amount": str(amount),
                "interest": str(interest),
                "principal": str(principal_portion),
                "remaining_balance": str(self.remaining_balance),
                "status": self.status.value
            }
        )
        return payment

    def payment_history(self) -> List[Transaction]:
        return self.payments.entries()

    def amortization_schedule(self) -> List[AmortizationEntry]:
        """
        Projected schedule from the current balance at the fixed payment.

        At most one row per month left in the term; the last row pays off
        whatever balance remains.
        """
        schedule = []
        balance = self.remaining_balance
        due_date = self.next_payment_date
        number = len(self.payments) + 1
        rows_left = max(self.term_months - len(self.payments), 1)
        r = self.monthly_rate

        while balance > 0 and rows_left > 0:
            rows_left -= 1
            interest = balance * r
            if rows_left == 0:
                payment = balance + interest
            else:
                payment = min(self.monthly_payment, balance + interest)
            principal_portion = payment - interest
            balance = balance - principal_portion
            if balance < self.currency.smallest_unit / 2:
                balance = Decimal('0')
            schedule.append(AmortizationEntry(
                payment_number=number,
                due_date=due_date,
                payment_amount=payment,
                interest_amount=interest,
                principal_amount=principal_portion,
                remaining_balance=balance
            ))
            number += 1
            due_date = add_months(due_date, 1)

        return schedule

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loan_id": self.loan_id,
            "account_id": self.account_id,
            "principal": str(self.principal),
            "annual_rate": str(self.annual_rate),
            "term_months": self.term_months,
            "currency": self.currency.code,
            "monthly_payment": str(self.monthly_payment),
            "remaining_balance": str(self.remaining_balance),
            "status": self.status.value,
            "issue_date": self.issue_date.isoformat(),
            "next_payment_date": self.next_payment_date.isoformat(),
            "total_paid": str(self.total_paid),
            "payments_made": len(self.payments),
        }
