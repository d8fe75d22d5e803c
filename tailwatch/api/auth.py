"""
Account endpoints.

- GET  /api/auth/session - Who am I (requires session)
- POST /api/auth/invite/check - Is this invite code valid for a username
- POST /api/auth/invite/redeem - Burn an invite once registered (requires session)
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from tailwatch.auth import require_session
from tailwatch.invites import InviteError, check_invite, redeem_invite
from tailwatch.models import get_session

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _invite_payload():
    data = request.get_json(silent=True)
    if not data:
        return None, None
    return (data.get('username') or '').strip(), (data.get('code') or '').strip()


@auth_bp.route('/session', methods=['GET'])
@require_session
def current_session():
    """Return the authenticated user."""
    return jsonify({'username': g.user['username'], 'is_admin': g.user['is_admin']})


@auth_bp.route('/invite/check', methods=['POST'])
def invite_check():
    """
    Check an invite code before starting passkey registration.

    Body: {"username": str, "code": str}
    """
    username, code = _invite_payload()
    if not username or not code:
        return jsonify({'error': 'username and code required'}), 400

    with get_session(current_app.config['DB_SESSION_FACTORY']) as session:
        valid = check_invite(session, username, code)

    if not valid:
        return jsonify({'valid': False, 'error': 'Invalid or used invite code'}), 403
    return jsonify({'valid': True})


@auth_bp.route('/invite/redeem', methods=['POST'])
@require_session
def invite_redeem():
    """
    Mark the caller's invite as used after registration completed.

    Body: {"code": str}. The username comes from the session.
    """
    data = request.get_json(silent=True) or {}
    code = (data.get('code') or '').strip()
    if not code:
        return jsonify({'error': 'code required'}), 400

    username = g.user['username']
    try:
        with get_session(current_app.config['DB_SESSION_FACTORY']) as session:
            user = redeem_invite(session, username, code)
            user_id = user.id
    except InviteError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'username': username, 'user_id': user_id})
