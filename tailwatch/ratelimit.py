"""
Fixed-window rate limiting per client IP.

Counters live in an ExpiringStore whose TTL equals the window, so a
client's counter disappears once its window has passed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from flask import Flask, jsonify, request

from tailwatch.audit import AuditEvent, audit_log
from tailwatch.cache import ExpiringStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter:
    """
    Allow at most max_requests per window_seconds for each key.

    Args:
        max_requests: Requests permitted per window.
        window_seconds: Window length.
        store: Counter store, created with the window as TTL if None.
    """

    def __init__(self, max_requests: int, window_seconds: int, store: Optional[ExpiringStore] = None):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        if store is None:
            store = ExpiringStore(ttl_seconds=window_seconds, max_entries=10000)
        self.store = store

    def hit(self, key: str) -> RateDecision:
        """Count one request for key and decide whether to allow it."""
        count, remaining_window = self.store.increment(key)
        if count > self.max_requests:
            return RateDecision(allowed=False, remaining=0, retry_after=max(1, int(remaining_window)))
        return RateDecision(allowed=True, remaining=self.max_requests - count, retry_after=0)


def limit_blueprint(app: Flask, blueprint_name: str, limiter: RateLimiter, message: str) -> None:
    """Apply limiter to every request routed to the named blueprint."""

    @app.before_request
    def _check_rate_limit():
        if request.blueprint != blueprint_name:
            return None

        client = request.remote_addr or 'unknown'
        decision = limiter.hit(f'{blueprint_name}:{client}')
        if decision.allowed:
            return None

        logger.warning(f'Rate limit exceeded for IP: {client} on {blueprint_name}')
        audit_log(AuditEvent.RATE_LIMIT_EXCEEDED, None, False, ip=client, scope=blueprint_name)
        response = jsonify({'error': message})
        response.status_code = 429
        response.headers['Retry-After'] = str(decision.retry_after)
        return response
