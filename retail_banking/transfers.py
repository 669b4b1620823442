"""
Transfer Protocol Module

Moves funds between two accounts atomically. Both account locks are held
for the whole debit/credit pair and are always taken in canonical (sorted
id) order, never in caller order, so opposite transfers cannot deadlock.
"""

import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional

from .accounts import Account
from .clock import Clock, SystemClock
from .currency import AmountLike
from .exceptions import FraudSuspicionError, NotFoundError, StateError, ValidationError
from .fraud import FraudAlert, FraudDetector
from .ledger import Transaction
from .logging_config import get_logger, log_action
from .storage import ACCOUNTS_TABLE, InMemoryStorage, LockManager


logger = get_logger("retail_banking.transfers")


@dataclass(frozen=True)
class TransferResult:
    """The two ledger entries written by a transfer"""
    debit: Transaction
    credit: Transaction

    @property
    def amount(self) -> Decimal:
        return self.debit.amount


class TransferService:
    """Coordinates two accounts and the fraud detector"""

    def __init__(
        self,
        storage: InMemoryStorage,
        locks: LockManager,
        detector: FraudDetector,
        clock: Optional[Clock] = None,
        alert_id_factory: Optional[Callable[[], str]] = None
    ):
        self.storage = storage
        self.locks = locks
        self.detector = detector
        self.clock = clock or SystemClock()
        self._alert_id_factory = alert_id_factory or self._sequential_alert_id
        self._alerts: List[FraudAlert] = []
        self._alerts_lock = threading.Lock()

    def _sequential_alert_id(self) -> str:
        return f"FRD{len(self._alerts) + 1:08d}"

    def _get_account(self, account_id: str) -> Account:
        account = self.storage.load(ACCOUNTS_TABLE, account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        return account

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> TransferResult:
        """
        Transfer funds from one account to another

        Raises:
            ValidationError: Same account, bad amount or currency mismatch
            NotFoundError: Unknown account id
            FraudSuspicionError: The heuristic fired; an alert was recorded
            StateError: Source or destination status blocks the transfer
            LimitExceededError: Insufficient funds or limit breach
        """
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to same account")

        source = self._get_account(from_account_id)
        destination = self._get_account(to_account_id)
        amount = source.validate_amount(amount)

        if source.currency != destination.currency:
            raise ValidationError(
                f"Currency mismatch: {source.currency.code} -> {destination.currency.code}"
            )

        assessment = self.detector.evaluate(source, amount, self.clock.now())
        if assessment.triggered:
            alert = self._record_alert(from_account_id, to_account_id, amount, assessment.reasons)
            raise FraudSuspicionError("Transaction flagged as potentially fraudulent", alert)

        with self.locks.acquire(from_account_id, to_account_id):
            source.validate_withdrawal(amount)
            if not destination.can_receive():
                raise StateError(
                    f"Account {to_account_id} cannot receive funds: {destination.status.value}"
                )

            debit = source.debit_transfer(
                amount, to_account_id, description or f"Transfer to {to_account_id}"
            )
            credit = destination.credit_transfer(
                amount, from_account_id, description or f"Transfer from {from_account_id}"
            )

        log_action(
            logger, "info", f"Transfer completed: {from_account_id} -> {to_account_id}",
            action="transfer", resource=f"account:{from_account_id}",
            extra={
                "to_account": to_account_id,
                "amount": str(amount),
                "debit_reference": debit.reference_number,
                "credit_reference": credit.reference_number
            }
        )
        return TransferResult(debit=debit, credit=credit)

    def _record_alert(self, from_account_id: str, to_account_id: str,
                      amount: Decimal, reasons: List[str]) -> FraudAlert:
        with self._alerts_lock:
            alert = FraudAlert(
                alert_id=self._alert_id_factory(),
                from_account_id=from_account_id,
                to_account_id=to_account_id,
                amount=amount,
                reasons=list(reasons),
                timestamp=self.clock.now()
            )
            self._alerts.append(alert)

        log_action(
            logger, "warning", f"Suspicious transfer: {from_account_id} -> {to_account_id}",
            action="fraud_alert", resource=f"account:{from_account_id}",
            extra={"alert_id": alert.alert_id, "amount": str(amount), "reasons": alert.reasons}
        )
        return alert

    def fraud_alerts(self) -> List[FraudAlert]:
        with self._alerts_lock:
            return list(self._alerts)
