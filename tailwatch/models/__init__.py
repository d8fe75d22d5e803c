"""
Database models for TailWatch.

Only the small amount of state the application owns lives here: users
and their invite codes. Flight data is never persisted.
"""

from tailwatch.models.base import (
    Base,
    SessionLocal,
    create_db_engine,
    create_session_factory,
    engine,
    get_session,
    init_db,
)
from tailwatch.models.user import InviteCode, User

__all__ = [
    'Base',
    'SessionLocal',
    'create_db_engine',
    'create_session_factory',
    'engine',
    'get_session',
    'init_db',
    'InviteCode',
    'User',
]
