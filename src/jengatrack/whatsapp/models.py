"""WhatsApp message models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TwilioInbound:
    """Normalized Twilio WhatsApp webhook form.

    `from_number` and `body` are PII: pass them to the pipeline, NEVER log them.
    """

    from_number: str
    body: str
    received_at: datetime
    num_media: int = 0
    media_url: str | None = None
    media_content_type: str | None = None
    message_sid: str | None = None
    button_payload: str | None = None
    button_text: str | None = None

    @property
    def has_media(self) -> bool:
        return self.num_media > 0 and bool(self.media_url)

    @property
    def reply_text(self) -> str:
        """Text to interpret: the quick-reply title when a button was tapped."""
        if not self.body.strip() and self.button_text:
            return self.button_text
        return self.body
