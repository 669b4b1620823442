"""
Fraud Detection Module

Fixed rule-based heuristic evaluated before every transfer. The detector
only reads account state; recording an alert is left to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .accounts import Account


BALANCE_SHARE = "large_share_of_balance"
NEAR_DAILY_LIMIT = "near_daily_limit"
HIGH_VELOCITY = "high_hourly_velocity"


@dataclass(frozen=True)
class FraudAssessment:
    """Result of evaluating one transfer"""
    triggered: bool
    reasons: List[str] = field(default_factory=list)
    recent_volume: Decimal = Decimal('0')


@dataclass(frozen=True)
class FraudAlert:
    """Record of a transfer rejected by the heuristic"""
    alert_id: str
    from_account_id: str
    to_account_id: str
    amount: Decimal
    reasons: List[str]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "from_account_id": self.from_account_id,
            "to_account_id": self.to_account_id,
            "amount": str(self.amount),
            "reasons": list(self.reasons),
            "timestamp": self.timestamp.isoformat(),
        }


class FraudDetector:
    """
    Rejects a transfer when any rule fires:

    - amount > balance_ratio x current balance
    - amount > daily_limit_ratio x daily limit
    - ledger volume in the trailing window > velocity_ratio x daily limit
    """

    def __init__(
        self,
        balance_ratio: Decimal = Decimal('0.8'),
        daily_limit_ratio: Decimal = Decimal('0.9'),
        velocity_ratio: Decimal = Decimal('0.5'),
        velocity_window: timedelta = timedelta(hours=1)
    ):
        self.balance_ratio = balance_ratio
        self.daily_limit_ratio = daily_limit_ratio
        self.velocity_ratio = velocity_ratio
        self.velocity_window = velocity_window

    @classmethod
    def from_config(cls, config) -> 'FraudDetector':
        return cls(
            balance_ratio=Decimal(config.fraud_balance_ratio),
            daily_limit_ratio=Decimal(config.fraud_daily_limit_ratio),
            velocity_ratio=Decimal(config.fraud_velocity_ratio),
            velocity_window=timedelta(minutes=config.fraud_velocity_window_minutes)
        )

    def evaluate(self, account: Account, amount: Decimal, now: Optional[datetime] = None) -> FraudAssessment:
        """Evaluate a transfer of `amount` out of `account`"""
        now = now or account.clock.now()
        reasons = []

        if amount > account.balance * self.balance_ratio:
            reasons.append(BALANCE_SHARE)

        if amount > account.daily_limit * self.daily_limit_ratio:
            reasons.append(NEAR_DAILY_LIMIT)

        recent_volume = account.ledger.total_since(now - self.velocity_window)
        if recent_volume > account.daily_limit * self.velocity_ratio:
            reasons.append(HIGH_VELOCITY)

        return FraudAssessment(triggered=bool(reasons), reasons=reasons, recent_volume=recent_volume)
