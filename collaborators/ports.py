"""
Purpose: Interfaces the dispatch core consumes from other services.
What it does:
Each port is an abstract class. Domain code programs against the port;
HTTP adapters (http_clients.py) or in-memory fakes (fakes.py) are injected.
Adapters own their own timeout policy and make at most one attempt per call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from couriers.models import Courier

LatLon = Tuple[float, float]


@dataclass(frozen=True)
class ShopInfo:
    id: str
    owner_id: str
    items: List[dict] = field(default_factory=list)


class ShopLookup(ABC):

    @abstractmethod
    def get(self, shop_id: str) -> ShopInfo:
        """Raises NotFoundError when the shop is unknown."""
        ...


class NearbyCouriers(ABC):

    @abstractmethod
    def find(self, lat: float, lon: float, radius_m: float) -> List[Courier]:
        """Couriers within radius_m of (lat, lon). May be empty."""
        ...


class BusyAssignments(ABC):

    @abstractmethod
    def list_assigned_couriers(self, candidate_ids: Iterable[str], active_statuses: Iterable) -> Set[str]:
        ...


class UserDirectory(ABC):

    @abstractmethod
    def get_email(self, user_id: str) -> Optional[str]:
        ...

    @abstractmethod
    def get_location(self, user_id: str) -> Optional[LatLon]:
        ...


class OtpStore(ABC):

    @abstractmethod
    def set(self, user_id: str, code: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    def verify(self, user_id: str, code: str) -> bool:
        """False for a wrong or expired code."""
        ...


class ItemCatalog(ABC):

    @abstractmethod
    def record_rating(self, item_id: str, rating: int) -> None:
        """Raises on failure; each item is rated independently."""
        ...


class Mailer(ABC):

    @abstractmethod
    def send(self, template: str, data: dict) -> None:
        ...


class Notifier(ABC):

    @abstractmethod
    def publish(self, channel_key: str, event_name: str, payload: dict) -> None:
        """Fire-and-forget, one delivery attempt, no retry."""
        ...


class PaymentVerifier(ABC):

    @abstractmethod
    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        ...
