"""Customer SMS through the Vonage SMS REST API."""

import logging

import httpx

from . import config
from .errors import UpstreamError

logger = logging.getLogger(__name__)

VONAGE_SMS_URL = "https://rest.nexmo.com/sms/json"

ORDER_PLACED_TEMPLATE = (
    "Your order has been placed and payment received! Your order token is: {token}. "
    "We'll notify you when it's ready."
)


def sms_destination(phone: str) -> str:
    return phone if phone.startswith("+") else f"{config.COUNTRY_CODE}{phone}"


class SmsSender:
    def __init__(self, api_key=None, api_secret=None, sender=None, client=None, timeout=10.0):
        self.api_key = api_key or config.VONAGE_API_KEY
        self.api_secret = api_secret or config.VONAGE_API_SECRET
        self.sender = sender or config.SMS_SENDER
        self._client = client
        self.timeout = timeout

    def send(self, to: str, text: str):
        """Send one SMS. Raises UpstreamError when Vonage does not accept it."""
        payload = {
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "from": self.sender,
            "to": to.lstrip("+"),
            "text": text,
        }
        try:
            if self._client is not None:
                response = self._client.post(VONAGE_SMS_URL, data=payload)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(VONAGE_SMS_URL, data=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamError(f"SMS request failed: {e}") from e

        messages = response.json().get("messages") or [{}]
        status = str(messages[0].get("status", ""))
        if status != "0":
            raise UpstreamError(f"SMS rejected: {messages[0].get('error-text', status)}")
        return messages[0].get("message-id")


def notify_order_placed(sender, phone, token):
    """Best effort: a failed SMS is logged and never reaches the caller."""
    to = sms_destination(phone)
    try:
        sender.send(to, ORDER_PLACED_TEMPLATE.format(token=token))
        logger.info("Confirmation SMS sent for token %s", token)
        return True
    except Exception:
        logger.exception("SMS to %s for token %s failed", to, token)
        return False
