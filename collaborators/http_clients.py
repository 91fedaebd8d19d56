#Purpose: HTTP adapters for the services the dispatch core depends on.
#Sole responsibility: talk to the auth, shop, notification and realtime services
#via HTTP and return normalized outputs.
#Encapsulates service-specific details:
#URL construction
#coordinate formatting (services speak GeoJSON lon,lat)
#timeouts / error mapping (one attempt, no retries)
#parsing response JSON into the port shapes
#It should not contain dispatch rules.

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

import settings
from common.errors import NotFoundError, UpstreamCollaboratorError
from couriers.models import Courier
from .ports import (
    ItemCatalog,
    Mailer,
    NearbyCouriers,
    Notifier,
    OtpStore,
    ShopInfo,
    ShopLookup,
    UserDirectory,
)

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class ServiceClient:
    """
    Base HTTP adapter: a base url, a timeout and JSON in / JSON out.
    """
    def __init__(self, base_url: str, timeout: float = None):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

        if not self.base_url:
            raise ValueError(f"{type(self).__name__} base URL not set. Please set it in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        try:
            if method == "GET":
                response = requests.get(url, timeout=self.timeout, **kwargs)
            else:
                response = requests.post(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise UpstreamCollaboratorError(f"{method} {url} failed: {exc}") from exc
        return response

    def _json(self, response: requests.Response) -> Dict[str, Any]:
        try:
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            raise UpstreamCollaboratorError(f"{response.url} returned {response.status_code}") from exc
        except ValueError as exc:
            raise UpstreamCollaboratorError(f"{response.url} returned invalid JSON") from exc

    @staticmethod
    def parse_point(document: Optional[dict]) -> Optional[LatLon]:
        """GeoJSON point {"coordinates": [lon, lat]} -> (lat, lon)"""
        coordinates = (document or {}).get("coordinates") or []
        if len(coordinates) < 2:
            return None
        longitude, latitude = coordinates[0], coordinates[1]
        return (float(latitude), float(longitude))


class AuthServiceClient(ServiceClient, NearbyCouriers, UserDirectory, OtpStore):
    """
    Courier locations, user profiles and delivery codes all live in the auth service.
    """
    def __init__(self, base_url: str = None, timeout: float = None):
        super().__init__(base_url or settings.AUTH_SERVICE_URL, timeout)

    #----------------
    # NearbyCouriers
    #----------------
    def find(self, lat: float, lon: float, radius_m: float) -> List[Courier]:
        response = self._send(
            "POST",
            "/api/auth/nearby-delivery-boys",
            json={"latitude": lat, "longitude": lon, "maxDistance": radius_m},
        )
        data = self._json(response).get("data") or []

        couriers = []
        for person in data:
            location = self.parse_point(person.get("location"))
            couriers.append(
                Courier(
                    id=str(person.get("_id") or person.get("id")),
                    location=location,
                    name=person.get("fullName"),
                    email=person.get("email"),
                    phone=person.get("mobile"),
                )
            )
        return couriers

    #----------------
    # UserDirectory
    #----------------
    def _get_user(self, user_id: str) -> dict:
        response = self._send("GET", f"/api/auth/user/{user_id}")
        if response.status_code == 404:
            return {}
        return self._json(response).get("data") or {}

    def get_email(self, user_id: str) -> Optional[str]:
        return self._get_user(user_id).get("email")

    def get_location(self, user_id: str) -> Optional[LatLon]:
        return self.parse_point(self._get_user(user_id).get("location"))

    #----------------
    # OtpStore
    #----------------
    def set(self, user_id: str, code: str, ttl_seconds: int) -> None:
        response = self._send(
            "POST",
            "/api/auth/update-otp",
            json={"userId": user_id, "otp": code, "expiresIn": ttl_seconds * 1000},
        )
        self._json(response)

    def verify(self, user_id: str, code: str) -> bool:
        response = self._send(
            "POST",
            "/api/auth/verify-delivery-otp",
            json={"userId": user_id, "otp": code},
        )
        #the auth service answers a wrong or expired code with a 4xx
        if 400 <= response.status_code < 500:
            return False
        return bool(self._json(response).get("success"))


class ShopServiceClient(ServiceClient, ShopLookup, ItemCatalog):

    def __init__(self, base_url: str = None, timeout: float = None):
        super().__init__(base_url or settings.SHOP_SERVICE_URL, timeout)

    def get(self, shop_id: str) -> ShopInfo:
        response = self._send("GET", f"/api/shops/{shop_id}")
        if response.status_code == 404:
            raise NotFoundError(f"Shop {shop_id} not found")

        shop = self._json(response).get("data")
        if not shop:
            raise NotFoundError(f"Shop {shop_id} not found")

        owner = shop.get("owner")
        if isinstance(owner, dict):
            owner = owner.get("_id")
        return ShopInfo(
            id=str(shop.get("_id") or shop_id),
            owner_id=str(owner) if owner is not None else "",
            items=list(shop.get("items") or []),
        )

    def record_rating(self, item_id: str, rating: int) -> None:
        response = self._send("POST", f"/api/items/{item_id}/rating", json={"rating": rating})
        self._json(response)


class NotificationServiceClient(ServiceClient, Mailer):
    """
    Outbound email. Templates map to notification-service endpoints
    (e.g. "order-status", "order-delivered").
    """
    def __init__(self, base_url: str = None, timeout: float = None):
        super().__init__(base_url or settings.NOTIFICATION_SERVICE_URL, timeout)

    def send(self, template: str, data: dict) -> None:
        response = self._send("POST", f"/api/notifications/{template}", json=data)
        self._json(response)


class RealtimeGatewayNotifier(ServiceClient, Notifier):
    """
    Pushes room-keyed events to the socket gateway that holds the client connections.
    """
    def __init__(self, base_url: str = None, timeout: float = None):
        super().__init__(base_url or settings.REALTIME_GATEWAY_URL, timeout)

    def publish(self, channel_key: str, event_name: str, payload: dict) -> None:
        response = self._send(
            "POST",
            "/api/realtime/publish",
            json={"room": channel_key, "event": event_name, "payload": payload},
        )
        self._json(response)
