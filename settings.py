#Purpose: Environment configuration.
#Reads service URLs and tunables from the environment (.env supported).
#Example .env:
#AUTH_SERVICE_URL=http://localhost:3001
#SHOP_SERVICE_URL=http://localhost:3002
#NOTIFICATION_SERVICE_URL=http://localhost:3007
#REALTIME_GATEWAY_URL=http://localhost:3008
#No business logic here.

import logging
import os

from dotenv import load_dotenv

load_dotenv()

AUTH_SERVICE_URL = os.getenv("AUTH_SERVICE_URL", "http://localhost:3001")
SHOP_SERVICE_URL = os.getenv("SHOP_SERVICE_URL", "http://localhost:3002")
NOTIFICATION_SERVICE_URL = os.getenv("NOTIFICATION_SERVICE_URL", "http://localhost:3007")
REALTIME_GATEWAY_URL = os.getenv("REALTIME_GATEWAY_URL", "http://localhost:3008")

#seconds to wait for any collaborator before giving up (one attempt, no retry)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))

#shared secret for online payment signatures, None disables online payments
PAYMENT_SIGNATURE_SECRET = os.getenv("RAZORPAY_KEY_SECRET") or os.getenv("RAZORPAY_SECRET_KEY")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str = None) -> None:
    """
    Basic process-wide logging setup for scripts and local runs.
    """
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
