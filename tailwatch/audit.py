"""
Security audit logging.

Audit events go to the ``tailwatch.audit`` logger, one line per event:

    INVITE_CHECK | alice | SUCCESS {"ip": "203.0.113.7"}
"""

import json
import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger('tailwatch.audit')


class AuditEvent(str, Enum):
    INVITE_CHECK = 'INVITE_CHECK'
    INVITE_ISSUED = 'INVITE_ISSUED'
    SESSION_VERIFIED = 'SESSION_VERIFIED'
    ACCESS_DENIED = 'ACCESS_DENIED'
    RATE_LIMIT_EXCEEDED = 'RATE_LIMIT_EXCEEDED'


def audit_log(event: AuditEvent, username: Optional[str], success: bool, **details) -> None:
    """Record a security-relevant event."""
    status = 'SUCCESS' if success else 'FAIL'
    details_str = json.dumps(details, sort_keys=True, default=str) if details else ''
    level = logging.INFO if success else logging.WARNING
    logger.log(level, f'{event.value} | {username or "-"} | {status} {details_str}'.rstrip())
