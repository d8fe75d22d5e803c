"""
FlightAware AeroAPI client.

Provides the flight data lookups the prediction engine consumes:
- Flights by ident (flight number, tail number or fa_flight_id)
- Scheduled and completed arrivals at an airport
- Flight track (position history)

Responses are cached read-through so that the several lookups made for
a single prediction, and repeated predictions for the same flight, do
not each cost an API call. Failures raise AeroAPIError; callers decide
whether that is fatal.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from tailwatch.cache import ExpiringStore
from tailwatch.config import AeroAPIConfig, config
from tailwatch.prediction.errors import FlightDataError
from tailwatch.prediction.records import FlightRecord

logger = logging.getLogger(__name__)


class AeroAPIError(FlightDataError):
    """AeroAPI request failed or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


class AeroAPIClient:
    """
    Client for the AeroAPI REST interface.

    Args:
        api_key: AeroAPI key sent as the ``x-apikey`` header.
        base_url: API root.
        timeout: Per-request timeout in seconds.
        cache: Store for raw responses; no caching if None.
        session: requests session, injectable for tests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = 'https://aeroapi.flightaware.com/aeroapi',
        timeout: float = 15.0,
        cache: Optional[ExpiringStore] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.cache = cache

        self.session = session or requests.Session()
        self.session.headers.update({
            'x-apikey': api_key,
            'Accept': 'application/json',
        })

        self._request_count = 0

        if not api_key:
            logger.warning('AeroAPI key not configured - flight lookups will fail')

    @classmethod
    def from_config(
        cls,
        settings: Optional[AeroAPIConfig] = None,
        cache: Optional[ExpiringStore] = None,
    ) -> 'AeroAPIClient':
        """Create client from application configuration."""
        settings = settings or config.aeroapi
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            cache=cache,
        )

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET an endpoint, serving from cache when possible."""
        params = {k: v for k, v in (params or {}).items() if v is not None}
        if self.cache is None:
            return self._fetch(endpoint, params)

        key = (endpoint, tuple(sorted(params.items())))
        return self.cache.get_or_set(key, lambda: self._fetch(endpoint, params))

    def _fetch(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f'{self.base_url}{endpoint}'
        logger.debug(f'AeroAPI request: {url} params={params}')

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            self._request_count += 1
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f'AeroAPI timeout: {endpoint}')
            raise AeroAPIError(f'AeroAPI timeout: {endpoint}') from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                logger.warning('AeroAPI rate limit exceeded')
            else:
                logger.error(f'AeroAPI error {status} for {endpoint}')
            raise AeroAPIError(f'AeroAPI error: {status}', status_code=status) from e
        except ValueError as e:
            # requests' JSONDecodeError is also a RequestException
            logger.error(f'AeroAPI returned invalid JSON for {endpoint}')
            raise AeroAPIError('AeroAPI returned invalid JSON') from e
        except requests.exceptions.RequestException as e:
            logger.error(f'AeroAPI request failed: {e}')
            raise AeroAPIError(f'AeroAPI request failed: {e}') from e

        if not isinstance(data, dict):
            raise AeroAPIError('AeroAPI returned an unexpected payload')
        return data

    @staticmethod
    def _parse_flights(items: Optional[List[Dict[str, Any]]]) -> List[FlightRecord]:
        records = []
        for item in items or []:
            record = FlightRecord.from_aeroapi(item)
            if record is not None:
                records.append(record)
        return records

    def get_flights_by_ident(self, ident: str) -> List[FlightRecord]:
        """All known operations for a flight number, tail number or flight id."""
        data = self._get(f'/flights/{ident}')
        flights = self._parse_flights(data.get('flights'))
        logger.debug(f'{len(flights)} flights for {ident}')
        return flights

    def get_scheduled_arrivals(self, airport: str, airline: Optional[str] = None) -> List[FlightRecord]:
        """Flights scheduled to arrive at airport, optionally for one airline."""
        data = self._get(f'/airports/{airport}/flights/scheduled_arrivals', {'airline': airline})
        return self._parse_flights(data.get('scheduled_arrivals'))

    def get_completed_arrivals(self, airport: str, start: datetime, end: datetime) -> List[FlightRecord]:
        """Flights that arrived at airport between start and end."""
        data = self._get(
            f'/airports/{airport}/flights/arrivals',
            {'start': _isoformat(start), 'end': _isoformat(end)},
        )
        return self._parse_flights(data.get('arrivals'))

    def get_track(self, flight_id: str) -> Dict[str, Any]:
        """Position history for a flight, passed through unchanged."""
        return self._get(f'/flights/{flight_id}/track')

    @property
    def stats(self) -> dict:
        """Get client statistics."""
        return {
            'requests': self._request_count,
            'cache': self.cache.stats if self.cache is not None else None,
        }
