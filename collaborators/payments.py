import hashlib
import hmac
import logging

import settings
from common.errors import InternalError
from .ports import PaymentVerifier

logger = logging.getLogger(__name__)


class HmacPaymentVerifier(PaymentVerifier):
    """
    Checks the provider's checkout signature: hex HMAC-SHA256 of "order_id|payment_id"
    keyed with the merchant secret.
    """
    def __init__(self, secret: str = None):
        self.secret = secret if secret is not None else settings.PAYMENT_SIGNATURE_SECRET

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.secret:
            raise InternalError("Payment configuration missing")

        expected = hmac.new(
            self.secret.encode("utf-8"),
            f"{order_id}|{payment_id}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

        matches = hmac.compare_digest(expected, signature or "")
        if not matches:
            logger.warning("Payment signature mismatch for provider order %s", order_id)
        return matches
