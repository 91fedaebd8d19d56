#Marks collaborators as a package.
#Re-exports the ports and the HTTP adapters so other modules import from
#collaborators without knowing internal file names.
#Fakes stay in collaborators.fakes. No business logic.

from .ports import (
    ShopInfo,
    ShopLookup,
    NearbyCouriers,
    BusyAssignments,
    UserDirectory,
    OtpStore,
    ItemCatalog,
    Mailer,
    Notifier,
    PaymentVerifier,
)
from .http_clients import (
    AuthServiceClient,
    ShopServiceClient,
    NotificationServiceClient,
    RealtimeGatewayNotifier,
)
from .payments import HmacPaymentVerifier

__all__ = [
           "ShopInfo",
           "ShopLookup",
             "NearbyCouriers",
             "BusyAssignments",
             "UserDirectory",
             "OtpStore",
             "ItemCatalog",
             "Mailer",
             "Notifier",
             "PaymentVerifier",
             "AuthServiceClient",
             "ShopServiceClient",
             "NotificationServiceClient",
             "RealtimeGatewayNotifier",
             "HmacPaymentVerifier",
             ]
