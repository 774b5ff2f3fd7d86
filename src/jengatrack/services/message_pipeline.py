"""Inbound WhatsApp message pipeline.

One call per webhook delivery:

    resolve or provision profile -> log inbound audit row -> onboarding
    short-circuit -> parse -> gate -> dispatch -> send reply -> log outbound
    audit row -> mark inbound row processed

The inbound audit row ends with processed=true on every path, with the
handler or delivery error attached. Nothing here raises to the transport
layer except an unavailable store before the inbound row exists.

Security: NEVER log the sender number or the message body.
"""

from dataclasses import dataclass

from jengatrack.domain.parsing import parse_intent
from jengatrack.domain.records import AuditMessage, Profile
from jengatrack.infra.store import ProjectStore, normalize_phone
from jengatrack.infra.time import utc_now
from jengatrack.observability.logging import get_logger
from jengatrack.observability.redaction import hash_identifier, safe_log_context
from jengatrack.services.intent_handlers import dispatch
from jengatrack.services.onboarding_service import advance_onboarding
from jengatrack.whatsapp.models import TwilioInbound
from jengatrack.whatsapp.outbound import MessageSender, SendResult
from jengatrack.whatsapp.templates import get_dashboard_url, render

logger = get_logger(__name__)

ONBOARDING_INTENT = "onboarding"


@dataclass(frozen=True)
class PipelineResult:
    user_id: str
    intent: str
    reply: str
    inbound_audit_id: str | None = None
    error: str | None = None
    delivered: bool = False


def _resolve_profile(store: ProjectStore, from_number: str) -> Profile:
    profile = store.get_user_by_phone_number(from_number)
    if profile is not None:
        return profile

    profile = store.create_user_profile(from_number)
    logger.info(
        "profile auto-provisioned",
        extra={"extra_fields": safe_log_context(user_id=profile.id)},
    )
    return profile


def _send_and_record(
    store: ProjectStore,
    sender: MessageSender,
    user_id: str,
    to: str,
    reply: str,
    intent: str,
) -> SendResult:
    """Send the reply and write the outbound audit row."""
    result = sender.send(to, reply)
    now = utc_now()
    store.log_audit_message(
        AuditMessage(
            direction="outbound",
            user_id=user_id,
            whatsapp_message_id=result.provider_message_id,
            message_body=reply,
            intent=intent,
            processed=True,
            error_message=None if result.success else result.error,
            received_at=now,
            processed_at=now,
        )
    )
    return result


def _combine_errors(*errors: str | None) -> str | None:
    present = [error for error in errors if error]
    return "; ".join(present) if present else None


def process_inbound(
    inbound: TwilioInbound,
    store: ProjectStore,
    sender: MessageSender,
) -> PipelineResult:
    """Process one normalized inbound message end to end.

    Raises:
        Exception: Only when the store fails before the inbound audit row
            is written; the caller logs it and still acknowledges.
    """
    profile = _resolve_profile(store, inbound.from_number)
    text = inbound.reply_text.strip()
    to = normalize_phone(inbound.from_number)

    audit = store.log_audit_message(
        AuditMessage(
            direction="inbound",
            user_id=profile.id,
            whatsapp_message_id=inbound.message_sid,
            message_body=inbound.body,
            media_url=inbound.media_url,
            received_at=inbound.received_at,
        )
    )

    log_ctx = safe_log_context(
        user_id=profile.id,
        from_hash=hash_identifier(to),
        text_len=len(text),
        num_media=inbound.num_media,
    )
    logger.info("processing inbound message", extra={"extra_fields": log_ctx})

    intent = ONBOARDING_INTENT
    error: str | None = None
    delivery_error: str | None = None
    reply = ""
    delivered = False

    try:
        onboarding = advance_onboarding(store, profile.id, text, inbound.button_payload)
        if onboarding is not None:
            reply = onboarding.reply
        else:
            parsed = parse_intent(inbound.body, inbound.media_url if inbound.has_media else None)
            intent = parsed.intent.value
            outcome = dispatch(parsed, profile.id, store, inbound.media_content_type)
            reply = outcome.reply
            error = outcome.error

        result = _send_and_record(store, sender, profile.id, to, reply, intent)
        delivered = result.success
        if not result.success:
            delivery_error = f"delivery failed: {result.error}"
    except Exception as exc:
        # Store failure outside a handler: record it and try to apologise
        logger.exception(
            "inbound pipeline failed",
            extra={"extra_fields": safe_log_context(user_id=profile.id, error_type=type(exc).__name__)},
        )
        error = str(exc) or type(exc).__name__
        if not reply:
            reply = render("handler_error", {"dashboard_url": get_dashboard_url()})
            try:
                apology = sender.send(to, reply)
            except Exception as send_exc:
                logger.exception(
                    "apology send failed",
                    extra={
                        "extra_fields": safe_log_context(
                            user_id=profile.id, error_type=type(send_exc).__name__
                        )
                    },
                )
                delivery_error = f"delivery failed: {send_exc}"
            else:
                delivered = apology.success
                if not apology.success:
                    delivery_error = f"delivery failed: {apology.error}"

    store.update_audit_message(
        audit.id,
        intent=intent,
        processed=True,
        error_message=_combine_errors(error, delivery_error),
        processed_at=utc_now(),
    )

    logger.info(
        "inbound message processed",
        extra={
            "extra_fields": safe_log_context(
                user_id=profile.id,
                intent=intent,
                delivered=delivered,
                has_error=error is not None or delivery_error is not None,
            )
        },
    )

    return PipelineResult(
        user_id=profile.id,
        intent=intent,
        reply=reply,
        inbound_audit_id=audit.id,
        error=_combine_errors(error, delivery_error),
        delivered=delivered,
    )
