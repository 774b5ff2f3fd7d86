"""Bearer-token check for the audit read endpoints.

Audit rows hold message bodies, user ids and media URLs, so reads require
`Authorization: Bearer <AUDIT_API_TOKEN>`. Fail-closed: with no token
configured every request is refused.
"""

from __future__ import annotations

import hmac
import os

from fastapi import Request

from jengatrack.observability.logging import get_logger
from jengatrack.observability.redaction import safe_log_context

logger = get_logger(__name__)


class AuditAuthError(Exception):
    """Raised when an audit request cannot be authenticated."""

    def __init__(self, status_code: int, reason: str):
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason


def extract_bearer_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string if valid Bearer format, None otherwise.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:]


def verify_audit_auth(request: Request) -> None:
    """Verify the audit bearer token.

    Raises:
        AuditAuthError: 403 when AUDIT_API_TOKEN is not configured,
            401 when the token is missing or wrong.
    """
    expected = os.environ.get("AUDIT_API_TOKEN", "")
    if not expected:
        logger.error(
            "AUDIT_API_TOKEN not configured - fail closed",
            extra={"extra_fields": safe_log_context(reason="missing_token_env")},
        )
        raise AuditAuthError(403, "audit endpoint disabled")

    token = extract_bearer_token(request)
    if not token:
        logger.warning(
            "audit auth failed: missing Bearer token",
            extra={"extra_fields": safe_log_context(reason="missing_bearer_token")},
        )
        raise AuditAuthError(401, "missing bearer token")

    if not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning(
            "audit auth failed: token mismatch",
            extra={"extra_fields": safe_log_context(reason="token_mismatch")},
        )
        raise AuditAuthError(401, "invalid bearer token")
