"""
User and InviteCode models.

Registration is invite-only: an operator issues a single-use code bound
to a username, and the code is marked used once that user registers.
Passkey credentials themselves are held by the central auth service.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from tailwatch.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered user."""

    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment='UUID'
    )

    username: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        comment='Login name'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        comment='Registration timestamp'
    )

    def __repr__(self) -> str:
        return f'<User {self.username}>'


class InviteCode(Base):
    """
    Single-use registration code bound to one username.

    One code per username; ``used_at`` is set once it has been redeemed.
    """

    __tablename__ = 'invite_codes'

    code: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment='URL-safe random code'
    )

    username: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        comment='Username this code is reserved for'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        comment='Issue timestamp'
    )

    used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment='Redemption timestamp'
    )

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def __repr__(self) -> str:
        return f'<InviteCode {self.username} {"used" if self.is_used else "unused"}>'
