"""Audit trail for order mutations.

Orders live in Notion, so the trail is written to the log stream rather than a
table. Payloads are never logged, only their SHA-256 hash.
"""
import logging
from typing import Any, Optional

from portal.core.enums import AuditAction
from portal.core.metrics import audit_logs_created
from portal.utils.hashing import payload_hash

logger = logging.getLogger("portal.audit")


def log_audit(
    caller_id: str,
    action: AuditAction,
    resource_id: Optional[str] = None,
    payload: Optional[Any] = None
) -> None:

    try:
        digest = payload_hash(payload)
        audit_logs_created.labels(action=str(action)).inc()
        logger.info(
            f"audit action={action} caller={caller_id} resource={resource_id or '-'} payload_hash={digest}"
        )
    except Exception as e:
        logger.error(f"Audit logging failed for action {action}: {e}", exc_info=True)
