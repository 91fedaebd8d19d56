"""
Purpose: Central configuration for courier broadcasts and delivery confirmation.
What it does:

Stores all tunable thresholds for finding couriers and confirming drop-offs:

PRIMARY_RADIUS_M = 5000
FALLBACK_RADIUS_M = 20000
OTP_TTL_SECONDS = 600

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


@dataclass(frozen=True)
class BroadcastPolicy:
    """
    Central configuration for broadcast radii, delivery codes and owner-view fees.
    """

    # --- Nearby search ---
    # First ring queried around the drop-off, in meters.
    primary_radius_m: float = 5000
    # Only queried when the first ring comes back empty.
    fallback_radius_m: float = 20000

    # --- Delivery confirmation ---
    otp_digits: int = 4
    otp_ttl_seconds: int = 600

    # --- Owner view ---
    # Orders below the threshold show a flat delivery fee on top.
    delivery_fee_threshold: Decimal = Decimal("500")
    delivery_fee: Decimal = Decimal("50")

    @property
    def radii(self) -> Tuple[float, float]:
        return (self.primary_radius_m, self.fallback_radius_m)

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.primary_radius_m <= 0:
            raise ValueError("primary_radius_m must be > 0")

        if self.fallback_radius_m < self.primary_radius_m:
            raise ValueError("fallback_radius_m must be >= primary_radius_m")

        if self.otp_digits < 4:
            raise ValueError("otp_digits must be >= 4")

        if self.otp_ttl_seconds <= 0:
            raise ValueError("otp_ttl_seconds must be > 0")

        if self.delivery_fee < 0 or self.delivery_fee_threshold < 0:
            raise ValueError("delivery fee settings must be >= 0")


def default_broadcast_policy() -> BroadcastPolicy:
    """
    Convenience factory for the default policy.
    """
    p = BroadcastPolicy()
    p.validate()
    return p


def broadcast_policy_from_env() -> BroadcastPolicy:
    """
    Same defaults, overridable through BROADCAST_* environment variables.
    """
    p = BroadcastPolicy(
        primary_radius_m=float(os.getenv("BROADCAST_PRIMARY_RADIUS_M", "5000")),
        fallback_radius_m=float(os.getenv("BROADCAST_FALLBACK_RADIUS_M", "20000")),
        otp_ttl_seconds=int(os.getenv("DELIVERY_OTP_TTL_SECONDS", "600")),
        delivery_fee_threshold=Decimal(os.getenv("DELIVERY_FEE_THRESHOLD", "500")),
        delivery_fee=Decimal(os.getenv("DELIVERY_FEE", "50")),
    )
    p.validate()
    return p
