"""
TailWatch Backend Package.

Personal flight tracker with delay prediction, built with Flask,
requests and SQLAlchemy.

Modules:
    prediction/  Inbound aircraft resolution and delay estimation
    services/    FlightAware AeroAPI client, flight-number search
    api/         REST endpoints for flights and accounts
    models/      SQLAlchemy ORM models (User, InviteCode)
    auth.py      Central-auth session verification
    ratelimit.py Per-client request limits
    invites.py   Invite-code issuance (CLI)
    cache.py     Keyed in-memory store with expiry
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
