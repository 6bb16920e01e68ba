"""
Coupon ledger enumerations.
"""

import enum


class TransactionKind(str, enum.Enum):
    """Coupon transaction kind."""
    ADD = "ADD"  # Admin top-up, always positive
    CONSUME = "CONSUME"  # Waste processing or reward redemption, always negative
    ADJUST = "ADJUST"  # Manual correction, either sign, reason required
