"""
Audit trail and best-effort side effects.

Anything that runs after the primary write has committed (audit rows, releasing
a deleted user's license) goes through run_best_effort: a failure is rolled back,
logged and counted, and never turns a successful request into an error.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from flask import current_app, has_request_context, request

from models import storage
from models.audit_log import AuditLog
from utils.rate_limit import get_client_ip

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    USER_DELETE = "user_delete"
    USER_BATCH_DELETE = "user_batch_delete"
    LICENSE_CREATE = "license_create"
    LICENSE_DELETE = "license_delete"
    LICENSE_BATCH_DELETE = "license_batch_delete"
    TOKEN_REFRESH = "token_refresh"
    TOKEN_REVOKE = "token_revoke"


def create_audit_log(
    action: AuditAction | str,
    admin_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    success: bool = True,
) -> AuditLog:
    entry = AuditLog(
        admin_id=admin_id,
        action=action.value if isinstance(action, AuditAction) else str(action),
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        success=success,
    )
    storage.new(entry)
    storage.save()
    return entry


def run_best_effort(name: str, fn: Callable[..., Any], *args, **kwargs) -> bool:
    """Run fn; on failure roll back, log and count it. Returns whether fn succeeded."""
    try:
        fn(*args, **kwargs)
    except Exception:
        storage.rollback()
        logger.exception("side_effect_failed", extra={"side_effect": name})
        failures = current_app.extensions.get("side_effect_failures")
        if failures is not None:
            failures[name] += 1
        return False
    return True


def audit(action: AuditAction, admin: Optional[dict] = None, **kwargs) -> bool:
    """Record an audit row for the current request, best effort."""
    if has_request_context():
        kwargs.setdefault("ip_address", get_client_ip(request))
        kwargs.setdefault("user_agent", request.headers.get("User-Agent"))
    if admin is not None:
        kwargs.setdefault("admin_id", admin.get("id"))
    return run_best_effort(f"audit:{action.value}", create_audit_log, action, **kwargs)
