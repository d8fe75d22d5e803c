"""
API module for TailWatch.

Provides REST endpoints for:
- Flight search, details, track and delay prediction
- Session and invite handling
"""

from tailwatch.api.auth import auth_bp
from tailwatch.api.flights import flights_bp

__all__ = ['auth_bp', 'flights_bp']
