"""Outbound WhatsApp messaging via the Twilio REST API.

Security: NEVER log the recipient or the text. Only log hashes and lengths.
Sends are attempted once; failures come back as SendResult, never raised.
"""

import os
from dataclasses import dataclass
from typing import Protocol

import requests
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from jengatrack.observability.logging import get_logger
from jengatrack.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

DEFAULT_WHATSAPP_NUMBER = "whatsapp:+14155238886"


@dataclass(frozen=True)
class SendResult:
    success: bool
    provider_message_id: str | None = None
    error: str | None = None


class MessageSender(Protocol):
    def send(self, to: str, text: str) -> SendResult: ...


def _whatsapp_address(number: str) -> str:
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


def _get_config() -> dict[str, str]:
    """Get Twilio config from environment.

    Required env vars:
    - TWILIO_ACCOUNT_SID
    - TWILIO_AUTH_TOKEN

    Optional:
    - TWILIO_WHATSAPP_NUMBER: sender address (default: Twilio sandbox number)
    """
    account_sid = os.environ.get("TWILIO_ACCOUNT_SID", "")
    auth_token = os.environ.get("TWILIO_AUTH_TOKEN", "")
    if not account_sid or not auth_token:
        raise RuntimeError("Missing Twilio config: TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN")

    return {
        "account_sid": account_sid,
        "auth_token": auth_token,
        "from_number": os.environ.get("TWILIO_WHATSAPP_NUMBER", DEFAULT_WHATSAPP_NUMBER),
    }


class TwilioMessageSender:
    """MessageSender over twilio.rest.Client."""

    def __init__(self, client: Client | None = None, from_number: str | None = None):
        if client is None or from_number is None:
            config = _get_config()
            client = client or Client(config["account_sid"], config["auth_token"])
            from_number = from_number or config["from_number"]
        self._client = client
        self._from = _whatsapp_address(from_number)

    def send(self, to: str, text: str) -> SendResult:
        """Send one text message.

        Args:
            to: Recipient number, with or without the whatsapp: prefix. NEVER logged.
            text: Message text. NEVER logged.
        """
        log_ctx = safe_log_context(to_hash=hash_identifier(to), text_len=len(text))
        logger.info("sending outbound message", extra={"extra_fields": log_ctx})

        try:
            message = self._client.messages.create(
                from_=self._from,
                to=_whatsapp_address(to),
                body=text,
            )
        except (TwilioException, requests.RequestException) as exc:
            logger.error(
                "outbound send failed",
                extra={
                    "extra_fields": safe_log_context(
                        to_hash=hash_identifier(to),
                        text_len=len(text),
                        error_type=type(exc).__name__,
                    )
                },
            )
            return SendResult(success=False, error=str(exc) or type(exc).__name__)

        logger.info("outbound message sent", extra={"extra_fields": log_ctx})
        return SendResult(success=True, provider_message_id=getattr(message, "sid", None))
