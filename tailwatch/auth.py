"""
Session verification against the central authentication service.

Passkey registration and login happen on the central auth site, which
sets a shared session cookie. This module only checks that cookie:

    GET {CENTRAL_AUTH_URL}/api/verify?service=track
    -> {"valid": true, "username": "alice", "isAdmin": false}
    -> {"valid": false, "reason": "no_access"}

Verification results are kept for a minute in an ExpiringStore so that
bursts of API calls do not each hit the auth service.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional
from urllib.parse import quote

import requests
from flask import current_app, g, jsonify, request

from tailwatch.audit import AuditEvent, audit_log
from tailwatch.cache import ExpiringStore
from tailwatch.config import AuthConfig, config

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """The central auth service could not be reached or answered badly."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AuthResult:
    valid: bool
    username: Optional[str] = None
    is_admin: bool = False
    reason: Optional[str] = None


class SessionVerifier:
    """
    Verifies session tokens with the central auth service.

    Args:
        settings: Auth service settings.
        cache: Store for verification results (keyed by token).
        session: requests session, injectable for tests.
    """

    def __init__(
        self,
        settings: Optional[AuthConfig] = None,
        cache: Optional[ExpiringStore] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or config.auth
        if cache is None:
            cache = ExpiringStore(ttl_seconds=self.settings.cache_ttl_seconds)
        self.cache = cache
        self.session = session or requests.Session()

    def login_url(self, return_to: str) -> str:
        """Where an unauthenticated browser should be sent."""
        return (
            f'{self.settings.central_auth_url}/login'
            f'?service={self.settings.service_name}&redirect={quote(return_to, safe="")}'
        )

    def verify(self, token: str) -> AuthResult:
        """
        Check a session token.

        Raises:
            AuthServiceError: the auth service is unreachable or returned a
                non-200 status. Nothing is cached in that case.
        """
        cached = self.cache.get(token)
        if cached is not None:
            return cached

        url = f'{self.settings.central_auth_url}/api/verify'
        try:
            response = self.session.get(
                url,
                params={'service': self.settings.service_name},
                cookies={self.settings.cookie_name: token},
                timeout=self.settings.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f'Error verifying session with central auth: {e}')
            raise AuthServiceError(str(e)) from e

        if response.status_code != 200:
            logger.error(f'Central auth returned {response.status_code}')
            raise AuthServiceError('Central auth rejected the request', status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthServiceError('Central auth returned invalid JSON') from e

        result = AuthResult(
            valid=bool(payload.get('valid')),
            username=payload.get('username'),
            is_admin=bool(payload.get('isAdmin', False)),
            reason=payload.get('reason'),
        )
        self.cache.set(token, result)
        if result.valid:
            audit_log(AuditEvent.SESSION_VERIFIED, result.username, True)
        return result


def _session_token(settings: AuthConfig) -> Optional[str]:
    """Cookie first, then the legacy header."""
    return request.cookies.get(settings.cookie_name) or request.headers.get(settings.header_name)


def _unauthorized(verifier: SessionVerifier, message: str, status: int = 401):
    return jsonify({
        'error': message,
        'redirect': verifier.login_url(request.host_url.rstrip('/')),
    }), status


def require_session(view):
    """
    Reject the request unless it carries a valid central-auth session.

    The verifier is taken from ``app.config['SESSION_VERIFIER']``. On
    success the user is available as ``g.user``.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        verifier: SessionVerifier = current_app.config['SESSION_VERIFIER']
        token = _session_token(verifier.settings)
        if not token:
            return _unauthorized(verifier, 'Not authenticated')

        try:
            result = verifier.verify(token)
        except AuthServiceError as e:
            if e.status_code is not None:
                return _unauthorized(verifier, 'Authentication service unavailable')
            return _unauthorized(verifier, 'Authentication service error', status=500)

        if not result.valid:
            audit_log(AuditEvent.ACCESS_DENIED, result.username, False, reason=result.reason, ip=request.remote_addr)
            if result.reason == 'no_access':
                return _unauthorized(verifier, 'Access denied to track service')
            return _unauthorized(verifier, 'Invalid session')

        g.user = {'username': result.username, 'is_admin': result.is_admin}
        return view(*args, **kwargs)

    return wrapper
