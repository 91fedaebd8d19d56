"""
Purpose: Core data models for the couriers domain.
What it does:
Defines the structure of a Courier as seen by the dispatch core: an id and a
last known location, plus the contact fields the candidate offer carries.
Courier profiles live in the auth service; this is only a snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class Courier:
    """
    A stateless representation of a courier returned by a nearby lookup.
    """
    id: str
    location: Optional[LatLon] = None

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def new(
        cls,
        courier_id: str,
        lat: float | None = None,
        lon: float | None = None,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> Courier:
        location = (lat, lon) if lat is not None and lon is not None else None
        return cls(id=str(courier_id), location=location, name=name, email=email, phone=phone)

    def to_offer_payload(self) -> dict:
        latitude, longitude = self.location if self.location else (None, None)
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "latitude": latitude,
            "longitude": longitude,
        }
