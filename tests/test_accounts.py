"""
Test suite for accounts module

Tests the validation chain, per-variant withdrawal rules, status transitions,
interest crediting and the monthly accumulator.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from retail_banking.accounts import (
    ACCOUNT_POLICIES, Account, AccountPolicy, AccountStatus, AccountType
)
from retail_banking.clock import DeterministicClock
from retail_banking.currency import Currency
from retail_banking.exceptions import LimitExceededError, StateError, ValidationError
from retail_banking.ledger import TransactionType


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


def make_account(clock, account_type=AccountType.CHECKING, balance='0', **kwargs):
    """Account with an optional opening deposit"""
    if account_type == AccountType.BUSINESS:
        kwargs.setdefault('business_name', "Acme Ltd")
        kwargs.setdefault('tax_id', "12-3456789")
    if account_type == AccountType.SAVINGS:
        kwargs.setdefault('interest_rate', Decimal('3.5'))
    account = Account(
        account_id=kwargs.pop('account_id', "ACCT00010000"),
        customer_id="CUST0000ABCD",
        account_type=account_type,
        currency=kwargs.pop('currency', Currency.USD),
        created_at=clock.now(),
        clock=clock,
        **kwargs
    )
    account.record_opening_deposit(Decimal(balance))
    return account


def snapshot(account):
    return account.balance, len(account.ledger), account.current_monthly_total()


class TestAccountPolicy:
    """Test per-variant policy values"""

    def test_variant_limits(self):
        """Test the limit table of each variant"""
        savings = ACCOUNT_POLICIES[AccountType.SAVINGS]
        checking = ACCOUNT_POLICIES[AccountType.CHECKING]
        business = ACCOUNT_POLICIES[AccountType.BUSINESS]

        assert (savings.minimum_balance, savings.daily_limit, savings.monthly_limit, savings.maintenance_fee) == \
            (Decimal('500'), Decimal('5000'), Decimal('50000'), Decimal('5'))
        assert (checking.minimum_balance, checking.daily_limit, checking.monthly_limit, checking.maintenance_fee) == \
            (Decimal('100'), Decimal('10000'), Decimal('100000'), Decimal('10'))
        assert (business.minimum_balance, business.daily_limit, business.monthly_limit, business.maintenance_fee) == \
            (Decimal('2500'), Decimal('50000'), Decimal('500000'), Decimal('25'))

    def test_minimum_balance_rule(self):
        policy = ACCOUNT_POLICIES[AccountType.SAVINGS]
        assert policy.allows_withdrawal(Decimal('1000'), Decimal('500'))
        assert not policy.allows_withdrawal(Decimal('1000'), Decimal('500.01'))

    def test_checking_overdraft_rule(self):
        """Checking may go down to -1000"""
        policy = ACCOUNT_POLICIES[AccountType.CHECKING]
        assert policy.allows_withdrawal(Decimal('0'), Decimal('1000'))
        assert not policy.allows_withdrawal(Decimal('0'), Decimal('1000.01'))

    def test_policy_is_immutable(self):
        policy = AccountPolicy(Decimal('1'), Decimal('2'), Decimal('3'), Decimal('4'))
        with pytest.raises(AttributeError):
            policy.minimum_balance = Decimal('0')


class TestAccountCreation:
    """Test account construction"""

    def test_defaults_from_policy(self, clock):
        account = make_account(clock, AccountType.SAVINGS)
        assert account.daily_limit == Decimal('5000')
        assert account.monthly_limit == Decimal('50000')
        assert account.status == AccountStatus.ACTIVE
        assert account.balance == Decimal('0')
        assert len(account.ledger) == 0

    def test_opening_deposit_recorded(self, clock):
        """Test a positive opening balance becomes the first ledger entry"""
        account = make_account(clock, balance='2000')

        entry = account.ledger.last()
        assert account.balance == Decimal('2000')
        assert entry.transaction_id == 1
        assert entry.transaction_type == TransactionType.DEPOSIT
        assert entry.description == "Initial Deposit"
        assert entry.balance_after == Decimal('2000')

    def test_negative_opening_balance_rejected(self, clock):
        with pytest.raises(ValidationError):
            make_account(clock, balance='-1')

    def test_business_requires_name_and_tax_id(self, clock):
        with pytest.raises(ValidationError, match="Business name and tax ID required"):
            Account(
                account_id="ACCT00010001",
                customer_id="CUST0000ABCD",
                account_type=AccountType.BUSINESS,
                currency=Currency.USD,
                created_at=clock.now(),
                clock=clock,
                business_name="Acme Ltd"
            )

    def test_currency_is_immutable(self, clock):
        account = make_account(clock)
        with pytest.raises(AttributeError):
            account.currency = Currency.EUR
        assert account.currency == Currency.USD


class TestDeposits:
    """Test deposit validation and posting"""

    def test_deposit(self, clock):
        account = make_account(clock, balance='100')
        entry = account.deposit(Decimal('50.25'), "Paycheck")

        assert account.balance == Decimal('150.25')
        assert entry.balance_after == account.balance
        assert entry.transaction_type == TransactionType.DEPOSIT
        assert entry.description == "Paycheck"
        assert entry.transaction_id == 2

    def test_deposit_accepts_strings(self, clock):
        account = make_account(clock)
        account.deposit("10.10")
        assert account.balance == Decimal('10.10')

    @pytest.mark.parametrize("amount", ['0', '-5', '1000000.01'])
    def test_invalid_amounts_rejected(self, clock, amount):
        account = make_account(clock, balance='100')
        before = snapshot(account)

        with pytest.raises(ValidationError):
            account.deposit(Decimal(amount))
        assert snapshot(account) == before

    @pytest.mark.parametrize("currency,amount", [
        (Currency.USD, '0.001'), (Currency.JPY, '10.5')
    ])
    def test_amount_finer_than_smallest_unit_rejected(self, clock, currency, amount):
        account = make_account(clock, balance='1000', currency=currency)
        before = snapshot(account)

        with pytest.raises(ValidationError, match="smallest"):
            account.deposit(amount)
        with pytest.raises(ValidationError, match="smallest"):
            account.withdraw(amount)
        assert snapshot(account) == before

    def test_non_numeric_amount_rejected(self, clock):
        account = make_account(clock)
        with pytest.raises(ValidationError):
            account.deposit("ten dollars")

    def test_frozen_account_rejects_deposit(self, clock):
        account = make_account(clock, balance='100')
        account.freeze()
        with pytest.raises(StateError):
            account.deposit(Decimal('10'))

    def test_suspended_account_rejects_deposit(self, clock):
        account = make_account(clock, balance='100')
        account.suspend()
        with pytest.raises(StateError):
            account.deposit(Decimal('10'))

    def test_deposit_above_daily_limit(self, clock):
        account = make_account(clock, AccountType.SAVINGS)
        with pytest.raises(LimitExceededError, match="daily"):
            account.deposit(Decimal('5000.01'))

    def test_amount_check_runs_before_status_check(self, clock):
        """The first failing check decides the error"""
        account = make_account(clock, balance='100')
        account.freeze()
        with pytest.raises(ValidationError):
            account.deposit(Decimal('0'))


class TestWithdrawals:
    """Test the withdrawal validation chain"""

    def test_withdraw(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='1000')
        entry = account.withdraw(Decimal('400'))

        assert account.balance == Decimal('600')
        assert entry.transaction_type == TransactionType.WITHDRAWAL
        assert entry.balance_after == Decimal('600')
        assert entry.description == "Withdrawal"

    def test_savings_minimum_balance(self, clock):
        """Test a withdrawal below the minimum balance is rejected untouched"""
        account = make_account(clock, AccountType.SAVINGS, balance='1000')
        before = snapshot(account)

        with pytest.raises(LimitExceededError, match="Insufficient funds"):
            account.withdraw(Decimal('501'))
        assert snapshot(account) == before

    def test_checking_overdraft(self, clock):
        account = make_account(clock, AccountType.CHECKING, balance='50')
        account.withdraw(Decimal('1050'))
        assert account.balance == Decimal('-1000')

        with pytest.raises(LimitExceededError):
            account.withdraw(Decimal('0.01'))

    def test_business_minimum_balance(self, clock):
        account = make_account(clock, AccountType.BUSINESS, balance='3000')
        with pytest.raises(LimitExceededError):
            account.withdraw(Decimal('500.01'))
        account.withdraw(Decimal('500'))
        assert account.balance == Decimal('2500')

    def test_withdrawal_over_daily_limit(self, clock):
        """Test a withdrawal above the daily limit leaves balance and ledger unchanged"""
        account = make_account(clock, AccountType.CHECKING, balance='20000')
        before = snapshot(account)

        with pytest.raises(LimitExceededError, match="daily"):
            account.withdraw(Decimal('10001'))
        assert snapshot(account) == before

    def test_sufficiency_checked_before_limits(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='600')
        with pytest.raises(LimitExceededError, match="Insufficient funds"):
            account.withdraw(Decimal('6000'))

    def test_frozen_account_rejects_withdrawal(self, clock):
        account = make_account(clock, balance='500')
        account.freeze()
        with pytest.raises(StateError, match="frozen"):
            account.withdraw(Decimal('10'))

    def test_suspended_account_allows_withdrawal(self, clock):
        account = make_account(clock, balance='500')
        account.suspend()
        account.withdraw(Decimal('10'))
        assert account.balance == Decimal('490')

    def test_balance_equation(self, clock):
        """balance = initial + deposits - withdrawals"""
        account = make_account(clock, AccountType.CHECKING, balance='1000')
        deposits = [Decimal('100.50'), Decimal('20'), Decimal('0.25')]
        withdrawals = [Decimal('300'), Decimal('45.75')]

        for amount in deposits:
            account.deposit(amount)
        for amount in withdrawals:
            account.withdraw(amount)

        assert account.balance == Decimal('1000') + sum(deposits) - sum(withdrawals)
        for entry in account.ledger:
            assert entry.balance_after is not None
        assert account.ledger.last().balance_after == account.balance


class TestMonthlyAccumulator:
    """Test the lazily reset monthly total"""

    def test_monthly_limit(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='45000', daily_limit=Decimal('50000'))
        account.deposit(Decimal('4000'))
        assert account.current_monthly_total() == Decimal('49000')

        with pytest.raises(LimitExceededError, match="monthly"):
            account.deposit(Decimal('1001'))
        account.deposit(Decimal('1000'))

    def test_resets_in_new_month(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='45000', daily_limit=Decimal('50000'))
        account.deposit(Decimal('5000'))

        clock.set_time(datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc))
        assert account.current_monthly_total() == Decimal('0')

        account.deposit(Decimal('4000'))
        assert account.monthly_total == Decimal('4000')

    def test_same_month_next_year_resets(self, clock):
        account = make_account(clock, balance='100')
        clock.set_time(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))
        assert account.current_monthly_total() == Decimal('0')

    def test_rejected_operation_not_counted(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='1000')
        with pytest.raises(LimitExceededError):
            account.withdraw(Decimal('900'))
        assert account.current_monthly_total() == Decimal('1000')


class TestInterest:
    """Test savings interest crediting"""

    def test_monthly_interest_scenario(self, clock):
        """500 at 3.5% earns 500 * 0.035 / 12"""
        account = make_account(clock, AccountType.SAVINGS, balance='500')
        entry = account.credit_monthly_interest()

        assert entry.amount == Decimal('1.4583')
        assert entry.transaction_type == TransactionType.INTEREST
        assert account.balance == Decimal('501.4583')
        assert account.last_interest_credit == date(2024, 1, 15)

    def test_idempotent_within_month(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='500')
        account.credit_monthly_interest()
        balance = account.balance

        clock.advance(days=10)
        assert account.credit_monthly_interest() is None
        assert account.balance == balance

    def test_credits_again_next_month(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='1200')
        account.credit_monthly_interest()

        clock.set_time(datetime(2024, 2, 1, tzinfo=timezone.utc))
        entry = account.credit_monthly_interest()
        assert entry is not None
        assert len(account.ledger.entries()) == 3

    def test_whole_unit_currency_interest(self, clock):
        """100000 JPY at 3.5% accrues 291.67, credited as 292"""
        account = make_account(clock, AccountType.SAVINGS, balance='100000', currency=Currency.JPY)
        entry = account.credit_monthly_interest()
        assert entry.amount == Decimal('292')
        assert account.balance == Decimal('100292')

    def test_zero_balance_earns_nothing(self, clock):
        account = make_account(clock, AccountType.SAVINGS)
        assert account.credit_monthly_interest() is None
        assert len(account.ledger) == 0

    def test_checking_does_not_earn_interest(self, clock):
        account = make_account(clock, AccountType.CHECKING, balance='500')
        with pytest.raises(ValidationError):
            account.credit_monthly_interest()


class TestChecks:
    """Test the checking account check counter"""

    def test_issue_checks(self, clock):
        account = make_account(clock, balance='500')
        assert account.issue_check() == 1
        assert account.issue_check() == 2
        assert account.checks_issued == 2
        assert account.to_dict()["checks_issued"] == 2
        assert account.balance == Decimal('500')

    def test_only_checking_issues_checks(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='500')
        with pytest.raises(ValidationError):
            account.issue_check()
        assert account.checks_issued == 0

    def test_frozen_account_cannot_issue_checks(self, clock):
        account = make_account(clock)
        account.freeze()
        with pytest.raises(StateError):
            account.issue_check()


class TestMaintenanceFee:
    """Test fee charging"""

    def test_fee_charged(self, clock):
        account = make_account(clock, AccountType.BUSINESS, balance='3000')
        entry = account.charge_maintenance_fee()

        assert entry.amount == Decimal('25')
        assert entry.transaction_type == TransactionType.FEE
        assert account.balance == Decimal('2975')

    def test_fee_skipped_when_balance_too_low(self, clock):
        account = make_account(clock, AccountType.CHECKING, balance='9.99')
        assert account.charge_maintenance_fee() is None
        assert account.balance == Decimal('9.99')

    def test_repeat_charges_are_not_guarded(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='600')
        account.charge_maintenance_fee()
        account.charge_maintenance_fee()
        assert account.balance == Decimal('590')


class TestStatusTransitions:
    """Test freeze, suspend and close"""

    def test_freeze_unfreeze(self, clock):
        account = make_account(clock, balance='100')
        account.freeze()
        assert account.status == AccountStatus.FROZEN
        account.unfreeze()
        assert account.status == AccountStatus.ACTIVE

    def test_unfreeze_requires_frozen(self, clock):
        account = make_account(clock)
        with pytest.raises(StateError, match="not frozen"):
            account.unfreeze()

    def test_suspend_reactivate(self, clock):
        account = make_account(clock)
        account.suspend()
        assert account.status == AccountStatus.SUSPENDED
        account.reactivate()
        assert account.is_active

    def test_close_requires_zero_balance(self, clock):
        account = make_account(clock, balance='100')
        with pytest.raises(StateError, match="non-zero balance"):
            account.close()

        account.withdraw(Decimal('100'))
        account.close()
        assert account.is_closed

    def test_close_from_frozen(self, clock):
        account = make_account(clock)
        account.freeze()
        account.close()
        assert account.status == AccountStatus.CLOSED

    def test_closed_is_terminal(self, clock):
        account = make_account(clock)
        account.close()

        for operation in (account.freeze, account.unfreeze, account.suspend,
                          account.reactivate, account.close):
            with pytest.raises(StateError):
                operation()
        with pytest.raises(StateError, match="closed"):
            account.withdraw(Decimal('1'))


class TestHistory:
    """Test date-filtered history"""

    def test_transaction_history_inclusive(self, clock):
        account = make_account(clock, balance='100')
        clock.set_time(datetime(2024, 1, 20, 23, 59, tzinfo=timezone.utc))
        account.deposit(Decimal('1'))
        clock.set_time(datetime(2024, 1, 21, 0, 1, tzinfo=timezone.utc))
        account.deposit(Decimal('2'))

        history = account.transaction_history(date(2024, 1, 15), date(2024, 1, 20))
        assert [t.amount for t in history] == [Decimal('100'), Decimal('1')]

    def test_to_dict(self, clock):
        account = make_account(clock, AccountType.SAVINGS, balance='500')
        data = account.to_dict()
        assert data["account_type"] == "savings"
        assert data["balance"] == "500"
        assert data["currency"] == "USD"
        assert data["transaction_count"] == 1
