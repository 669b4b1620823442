"""
Banking Error Taxonomy

Every error here is recoverable at the call boundary and is raised before
any balance, ledger or registry mutation takes place.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .fraud import FraudAlert


class BankingError(Exception):
    """Base exception for the banking engine"""

    pass


class ValidationError(BankingError, ValueError):
    """Malformed amount or identity field"""

    pass


class AuthenticationError(ValidationError):
    """Credential verification failed"""

    pass


class NotFoundError(BankingError):
    """Unknown customer, account, loan or transaction id"""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class StateError(BankingError):
    """Operation blocked by account or loan status"""

    pass


class LimitExceededError(BankingError):
    """Insufficient funds or a daily/monthly limit breach"""

    pass


class FraudSuspicionError(BankingError):
    """Transfer blocked by the fraud heuristic"""

    def __init__(self, message: str, alert: Optional['FraudAlert'] = None):
        super().__init__(message)
        self.alert = alert
