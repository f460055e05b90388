"""Application settings used to pre-fill new loans."""

from dataclasses import dataclass, field
from decimal import Decimal

from loan_tracker.models.enums import PaymentFrequency


@dataclass
class AppSettings:
    """User-editable defaults. Never read by the calculations."""

    default_interest_rate: Decimal = field(default_factory=lambda: Decimal("5"))
    default_payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    default_installments: int = 12
    currency: str = "R$"
