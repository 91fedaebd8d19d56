from .envelope import Envelope, enveloped, fail, ok
from .service import DeliveryService

__all__ = ["DeliveryService", "Envelope", "enveloped", "fail", "ok"]
