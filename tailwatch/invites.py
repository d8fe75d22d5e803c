"""
Invite codes for invite-only registration.

Usage:
    python -m tailwatch.invites <username>

Prints a single-use code reserved for that username. Running it again
for the same username re-prints the existing code until it is used.
"""

import argparse
import logging
import secrets
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tailwatch.audit import AuditEvent, audit_log
from tailwatch.models import InviteCode, User, get_session, init_db

logger = logging.getLogger(__name__)


class InviteError(Exception):
    """An invite cannot be issued or redeemed."""


@dataclass(frozen=True)
class IssuedInvite:
    username: str
    code: str
    created: bool  # False when an existing unused code was returned


def generate_code() -> str:
    """16 random bytes, URL-safe base64 without padding."""
    return secrets.token_urlsafe(16)


def issue_invite(session: Session, username: str) -> IssuedInvite:
    """
    Reserve an invite code for username.

    Raises:
        InviteError: the user already exists, or their code was used.
    """
    username = username.strip()
    if not username:
        raise InviteError('Username required')

    if session.scalar(select(User).where(User.username == username)) is not None:
        raise InviteError(f"User '{username}' already exists")

    existing = session.scalar(select(InviteCode).where(InviteCode.username == username))
    if existing is not None:
        if existing.is_used:
            raise InviteError(f"An invite code for '{username}' was already used")
        return IssuedInvite(username=username, code=existing.code, created=False)

    invite = InviteCode(code=generate_code(), username=username)
    session.add(invite)
    session.flush()

    audit_log(AuditEvent.INVITE_ISSUED, username, True)
    return IssuedInvite(username=username, code=invite.code, created=True)


def _find_invite(session: Session, username: str, code: str) -> Optional[InviteCode]:
    invite = session.scalar(select(InviteCode).where(InviteCode.username == username))
    if invite is None or not secrets.compare_digest(invite.code, code):
        return None
    return invite


def check_invite(session: Session, username: str, code: str) -> bool:
    """True if code is the unused invite reserved for username."""
    invite = _find_invite(session, username, code)
    valid = invite is not None and not invite.is_used
    audit_log(AuditEvent.INVITE_CHECK, username, valid)
    return valid


def redeem_invite(session: Session, username: str, code: str) -> User:
    """
    Burn the invite and record the user.

    Raises:
        InviteError: the code is wrong or already used.
    """
    invite = _find_invite(session, username, code)
    if invite is None:
        raise InviteError('Invalid invite code')
    if invite.is_used:
        raise InviteError('Invite code already used')

    invite.used_at = datetime.now(timezone.utc)
    user = User(id=str(uuid.uuid4()), username=username)
    session.add(user)
    session.flush()

    logger.info(f'Invite redeemed by {username}')
    return user


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Issue an invite code for a TailWatch user.')
    parser.add_argument('username', help='Username the code is reserved for.')
    args = parser.parse_args(argv)

    init_db()
    try:
        with get_session() as session:
            invite = issue_invite(session, args.username)
    except InviteError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    if invite.created:
        print('Invite code generated successfully!')
    else:
        print(f"An unused invite code already exists for '{invite.username}':")
    print(f'Username:    {invite.username}')
    print(f'Invite Code: {invite.code}')
    print(f"This code is single-use and can only be used by '{invite.username}'.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
