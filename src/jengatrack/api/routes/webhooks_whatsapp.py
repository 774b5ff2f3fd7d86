"""WhatsApp webhook routes - Twilio integration.

Security:
- Sender number and body exist only in memory during processing
- Logs contain NO PII (hashes and lengths only)
- Optional X-Twilio-Signature validation (TWILIO_VALIDATE_SIGNATURE=true)

The webhook always acknowledges with an empty TwiML document once the form is
valid, so Twilio never retries because of an internal failure.
"""

import os
from datetime import datetime

from fastapi import APIRouter, Header, HTTPException, Query, Request, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from jengatrack.api.audit_auth import AuditAuthError, verify_audit_auth
from jengatrack.infra.dedupe import RecentMessageCache, ttl_from_env
from jengatrack.infra.postgres_store import PostgresProjectStore
from jengatrack.infra.store import ProjectStore
from jengatrack.observability.correlation import get_correlation_id
from jengatrack.observability.logging import get_logger
from jengatrack.observability.redaction import safe_log_context
from jengatrack.services.message_pipeline import process_inbound
from jengatrack.whatsapp.models import TwilioInbound
from jengatrack.whatsapp.outbound import MessageSender, TwilioMessageSender
from jengatrack.whatsapp.twilio_adapter import (
    InvalidPayloadError,
    SignatureVerificationError,
    normalize,
    verify_signature,
)

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks"])

logger = get_logger(__name__)

EMPTY_TWIML = "<Response></Response>"
TWIML_MEDIA_TYPE = "application/xml"

MAX_AUDIT_LIMIT = 200


class AuditMessageOut(BaseModel):
    id: str | None
    user_id: str | None
    whatsapp_message_id: str | None
    direction: str
    message_body: str | None
    media_url: str | None
    intent: str | None
    processed: bool
    ai_used: bool
    error_message: str | None
    received_at: datetime | None
    processed_at: datetime | None


class AuditListResponse(BaseModel):
    count: int
    messages: list[AuditMessageOut]


_store: ProjectStore | None = None
_sender: MessageSender | None = None
_dedupe_cache = RecentMessageCache(ttl_seconds=ttl_from_env())


def _get_store() -> ProjectStore:
    """Get project store instance (allows test injection)."""
    global _store
    if _store is None:
        _store = PostgresProjectStore()
    return _store


def _get_sender() -> MessageSender:
    """Get outbound sender instance (allows test injection)."""
    global _sender
    if _sender is None:
        _sender = TwilioMessageSender()
    return _sender


def _get_dedupe_cache() -> RecentMessageCache:
    return _dedupe_cache


def _signature_validation_enabled() -> bool:
    return os.environ.get("TWILIO_VALIDATE_SIGNATURE", "").lower() == "true"


def _twiml(status_code: int = 200) -> Response:
    return Response(status_code=status_code, content=EMPTY_TWIML, media_type=TWIML_MEDIA_TYPE)


def _run_pipeline(inbound: TwilioInbound) -> None:
    process_inbound(inbound, _get_store(), _get_sender())


@router.post("/twilio")
async def twilio_webhook(
    request: Request,
    x_twilio_signature: str | None = Header(None, alias="X-Twilio-Signature"),
) -> Response:
    """Receive a Twilio WhatsApp webhook.

    Returns:
        200 with empty TwiML once the form is valid, including duplicates
            and internal failures.
        400 if the form is unreadable or From is missing.
        403 if signature validation is enabled and fails.
    """
    correlation_id = get_correlation_id()

    # 1. Read form
    try:
        form = await request.form()
    except Exception:
        logger.warning(
            "unreadable form body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return Response(status_code=400, content="invalid form")

    fields = {key: value for key, value in form.items() if isinstance(value, str)}

    # 2. Signature (fail-closed when enabled)
    if _signature_validation_enabled():
        try:
            verify_signature(
                os.environ.get("TWILIO_AUTH_TOKEN", ""),
                str(request.url),
                fields,
                x_twilio_signature,
            )
        except SignatureVerificationError:
            logger.warning(
                "twilio signature mismatch",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
            )
            return Response(status_code=403, content="forbidden")

    # 3. Normalize
    try:
        inbound = normalize(fields)
    except InvalidPayloadError as exc:
        logger.warning(
            "invalid twilio payload shape",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id, reason=str(exc))},
        )
        return Response(status_code=400, content="invalid payload shape")

    # 4. Dedupe provider retries
    if _get_dedupe_cache().check_and_add(inbound.message_sid):
        logger.info(
            "duplicate message ignored",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    message_sid_prefix=(inbound.message_sid or "")[:8],
                )
            },
        )
        return _twiml()

    # 5. Process (blocking: database and Twilio REST)
    try:
        await run_in_threadpool(_run_pipeline, inbound)
    except Exception:
        logger.exception(
            "webhook processing failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )

    return _twiml()


@router.get("/messages", response_model=AuditListResponse)
async def recent_messages(
    request: Request,
    limit: int = Query(50, ge=1, le=MAX_AUDIT_LIMIT),
    user_id: str | None = Query(None),
) -> AuditListResponse:
    """Recent audit rows, newest first (replaces the old in-memory debug log).

    Requires `Authorization: Bearer <AUDIT_API_TOKEN>`.

    Returns:
        401 if the bearer token is missing or wrong.
        403 if AUDIT_API_TOKEN is not configured.
    """
    try:
        verify_audit_auth(request)
    except AuditAuthError as exc:
        logger.warning(
            "audit listing refused",
            extra={"extra_fields": safe_log_context(correlationId=get_correlation_id())},
        )
        raise HTTPException(status_code=exc.status_code, detail=exc.reason) from None

    store = _get_store()
    rows = await run_in_threadpool(store.list_audit_messages, limit, user_id)
    return AuditListResponse(
        count=len(rows),
        messages=[
            AuditMessageOut(
                id=row.id,
                user_id=row.user_id,
                whatsapp_message_id=row.whatsapp_message_id,
                direction=row.direction,
                message_body=row.message_body,
                media_url=row.media_url,
                intent=row.intent,
                processed=row.processed,
                ai_used=row.ai_used,
                error_message=row.error_message,
                received_at=row.received_at,
                processed_at=row.processed_at,
            )
            for row in rows
        ],
    )
