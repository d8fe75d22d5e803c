import json
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import requests

from tailwatch.prediction import FlightDataError, FlightRecord

T0 = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


def at(minutes: float) -> datetime:
    """T0 shifted by minutes."""
    return T0 + timedelta(minutes=minutes)


def make_flight(flight_id: str, **kwargs) -> FlightRecord:
    defaults = {
        'ident': 'IGO412',
        'ident_iata': '6E412',
        'operator': 'IGO',
        'operator_icao': 'IGO',
        'operator_iata': '6E',
        'origin': 'VIDP',
        'destination': 'VABB',
        'status': 'Scheduled',
    }
    defaults.update(kwargs)
    return FlightRecord(id=flight_id, **defaults)


class FakeFlightSource:
    """In-memory flight data source recording every lookup."""

    def __init__(
        self,
        flights: Optional[Dict[str, List[FlightRecord]]] = None,
        scheduled: Optional[List[FlightRecord]] = None,
        completed: Optional[List[FlightRecord]] = None,
        failing_idents: tuple = (),
        fail_arrivals: bool = False,
        barrier: Optional[threading.Barrier] = None,
        track: Optional[dict] = None,
    ):
        self.flights = flights or {}
        self.scheduled = scheduled or []
        self.completed = completed or []
        self.failing_idents = set(failing_idents)
        self.fail_arrivals = fail_arrivals
        self.barrier = barrier
        self.track = track or {'positions': []}
        self.calls = []

    def get_flights_by_ident(self, ident: str) -> List[FlightRecord]:
        self.calls.append(('ident', ident))
        if ident in self.failing_idents:
            raise FlightDataError(f'lookup failed for {ident}')
        return list(self.flights.get(ident, []))

    def get_scheduled_arrivals(self, airport: str, airline: Optional[str] = None) -> List[FlightRecord]:
        self.calls.append(('scheduled', airport, airline))
        if self.barrier is not None:
            self.barrier.wait()
        if self.fail_arrivals:
            raise FlightDataError('arrivals unavailable')
        return list(self.scheduled)

    def get_completed_arrivals(self, airport: str, start: datetime, end: datetime) -> List[FlightRecord]:
        self.calls.append(('completed', airport, start, end))
        if self.barrier is not None:
            self.barrier.wait()
        if self.fail_arrivals:
            raise FlightDataError('arrivals unavailable')
        return list(self.completed)

    def get_track(self, flight_id: str) -> dict:
        self.calls.append(('track', flight_id))
        return self.track


def make_response(status_code: int = 200, payload=None, body: Optional[bytes] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.url = 'https://example.test/'
    if body is None:
        body = json.dumps(payload if payload is not None else {}).encode()
    response._content = body
    return response


class FakeHTTPSession:
    """Stands in for requests.Session; replies from a queue or a callable."""

    def __init__(self, responder):
        self.headers = {}
        self.responder = responder
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        result = self.responder(url, **kwargs)
        if isinstance(result, Exception):
            raise result
        return result


class FakeAuthServer:
    """Central auth stand-in answering /api/verify by session cookie."""

    def __init__(self, cookie_name: str = 'ccp_auth_token'):
        self.cookie_name = cookie_name
        self.sessions = {
            'alice-token': {'valid': True, 'username': 'alice', 'isAdmin': False},
            'blocked-token': {'valid': False, 'username': 'mallory', 'reason': 'no_access'},
        }
        self.status_code = 200
        self.error: Optional[Exception] = None

    def __call__(self, url, **kwargs):
        if self.error is not None:
            return self.error
        token = kwargs['cookies'][self.cookie_name]
        return make_response(self.status_code, self.sessions.get(token, {'valid': False}))
