"""
Configuration management for TailWatch.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class AeroAPIConfig:
    """FlightAware AeroAPI configuration."""
    api_key: str = os.getenv('FLIGHTAWARE_API_KEY', '')
    base_url: str = os.getenv('AEROAPI_BASE_URL', 'https://aeroapi.flightaware.com/aeroapi')
    timeout_seconds: float = float(os.getenv('AEROAPI_TIMEOUT_SECONDS', '15'))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///tailwatch.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class CacheConfig:
    """Upstream response cache settings."""
    ttl_seconds: int = int(os.getenv('CACHE_TTL_SECONDS', '60'))
    max_entries: int = 500


@dataclass(frozen=True)
class AuthConfig:
    """Central authentication service settings."""
    central_auth_url: str = os.getenv('CENTRAL_AUTH_URL', 'https://auth.chinmaypandhare.uk')
    service_name: str = os.getenv('AUTH_SERVICE_NAME', 'track')
    cookie_name: str = 'ccp_auth_token'
    header_name: str = 'X-Session-Id'
    cache_ttl_seconds: int = 60
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-client request limits (requests per window)."""
    auth_max_requests: int = int(os.getenv('AUTH_RATE_LIMIT', '5'))
    auth_window_seconds: int = 15 * 60
    api_max_requests: int = int(os.getenv('API_RATE_LIMIT', '30'))
    api_window_seconds: int = 60


@dataclass(frozen=True)
class PredictionConfig:
    """Delay prediction tuning."""
    min_turnaround_minutes: int = 30
    stale_inbound_hours: int = 24

    # Arrival window searched when the tail number is unknown
    probabilistic_window_hours: int = 24
    probabilistic_min_gap_minutes: int = 30

    # More candidates than this is too ambiguous to guess
    max_probabilistic_candidates: int = 1

    reason_threshold_minutes: int = 15


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    aeroapi: AeroAPIConfig
    database: DatabaseConfig
    cache: CacheConfig
    auth: AuthConfig
    rate_limit: RateLimitConfig
    prediction: PredictionConfig

    # Allowed CORS origin for the frontend
    origin: str

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        aeroapi=AeroAPIConfig(),
        database=DatabaseConfig(),
        cache=CacheConfig(),
        auth=AuthConfig(),
        rate_limit=RateLimitConfig(),
        prediction=PredictionConfig(),
        origin=os.getenv('ORIGIN', 'http://localhost:5173'),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
