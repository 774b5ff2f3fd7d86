"""Twilio adapter - validate and normalize WhatsApp webhook forms."""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from twilio.request_validator import RequestValidator

from .models import TwilioInbound


class InvalidPayloadError(Exception):
    """Raised when the Twilio form has an invalid shape."""

    pass


class SignatureVerificationError(Exception):
    """Raised when X-Twilio-Signature does not match the request."""

    pass


def _optional(form: Mapping[str, Any], key: str) -> str | None:
    value = form.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize(form: Mapping[str, Any]) -> TwilioInbound:
    """Normalize a Twilio webhook form.

    Args:
        form: Form fields posted by Twilio (From, Body, NumMedia, MediaUrl0, ...).

    Returns:
        TwilioInbound with sender and body (PII).

    Raises:
        InvalidPayloadError: If From is missing or NumMedia is not an integer.
    """
    from_number = _optional(form, "From")
    if not from_number:
        raise InvalidPayloadError("missing From")

    raw_num_media = form.get("NumMedia") or "0"
    try:
        num_media = int(raw_num_media)
    except (TypeError, ValueError):
        raise InvalidPayloadError("invalid NumMedia") from None
    if num_media < 0:
        raise InvalidPayloadError("invalid NumMedia")

    media_url = None
    media_content_type = None
    if num_media > 0:
        media_url = _optional(form, "MediaUrl0")
        media_content_type = _optional(form, "MediaContentType0")

    return TwilioInbound(
        from_number=from_number,
        body=str(form.get("Body") or ""),
        received_at=datetime.now(timezone.utc),
        num_media=num_media,
        media_url=media_url,
        media_content_type=media_content_type,
        message_sid=_optional(form, "MessageSid"),
        button_payload=_optional(form, "ButtonPayload"),
        button_text=_optional(form, "ButtonText"),
    )


def verify_signature(
    auth_token: str,
    url: str,
    form: Mapping[str, Any],
    signature: str | None,
) -> None:
    """Check X-Twilio-Signature against the request URL and form params.

    Raises:
        SignatureVerificationError: If the signature is missing or wrong.
    """
    if not signature:
        raise SignatureVerificationError("missing signature")
    validator = RequestValidator(auth_token)
    if not validator.validate(url, dict(form), signature):
        raise SignatureVerificationError("signature mismatch")
