"""
Customer Module

Customer identity plus the opaque credential token. Customers own
accounts and loans by id only.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

from .exceptions import ValidationError


@dataclass
class Customer:
    """Bank customer"""
    customer_id: str
    first_name: str
    last_name: str
    email: str
    password_token: str = field(repr=False)
    created_at: datetime
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None

    def __post_init__(self):
        # Basic validation
        if not self.first_name or not self.last_name:
            raise ValidationError("First name and last name are required")
        if not self.email:
            raise ValidationError("Email is required")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "created_at": self.created_at.isoformat(),
        }
