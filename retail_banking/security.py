"""
Credentials and identifiers consumed by the registry.

Password tokens are opaque to the rest of the engine; only this module
knows they are "salt$scrypt-hex".
"""

import hashlib
import hmac
import itertools
import secrets
import threading

from .exceptions import ValidationError


class CredentialService:
    """Salted scrypt password hashing"""

    def __init__(self, n: int = 16384, r: int = 8, p: int = 1):
        self.n = n
        self.r = r
        self.p = p

    def _generate_salt(self) -> str:
        """Generate random salt for password hashing"""
        return secrets.token_hex(16)

    def _derive(self, password: str, salt: str) -> str:
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=self.n, r=self.r, p=self.p
        ).hex()

    def hash(self, password: str) -> str:
        if not password:
            raise ValidationError("Password cannot be empty")
        salt = self._generate_salt()
        return f"{salt}${self._derive(password, salt)}"

    def verify(self, password: str, token: str) -> bool:
        """Check a password against a stored token in constant time"""
        if not password or not token or "$" not in token:
            return False
        salt, expected = token.split("$", 1)
        return hmac.compare_digest(self._derive(password, salt), expected)


class IdentifierGenerator:
    """
    Prefixed entity ids.

    Customer, loan and alert ids are random hex; account ids come from a
    sequential counter so they also sort in creation order.
    """

    def __init__(self, account_start: int = 10000):
        self._accounts = itertools.count(account_start)
        self._lock = threading.Lock()

    @staticmethod
    def _random_hex() -> str:
        return secrets.token_hex(4).upper()

    def customer_id(self) -> str:
        return f"CUST{self._random_hex()}"

    def account_id(self) -> str:
        with self._lock:
            return f"ACCT{next(self._accounts):08d}"

    def loan_id(self) -> str:
        return f"LOAN{self._random_hex()}"

    def alert_id(self) -> str:
        return f"FRD{self._random_hex()}"
