"""
Flight records as delivered by the upstream flight data provider.

AeroAPI flight objects are flat JSON documents with ISO-8601 timestamps
for each stage of a flight:

    scheduled_off / estimated_off / actual_off   (departure, runway)
    scheduled_in  / estimated_in  / actual_in    (arrival, gate)

Only later stages are populated as the flight progresses. Actual times
are authoritative over estimates, which are authoritative over the
schedule. The timestamps are not guaranteed to be mutually consistent
(an estimate may precede the schedule), so nothing here assumes they are
ordered.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime the way AeroAPI does (UTC, 'Z' suffix)."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """
    Whole minutes from start to end, rounded to nearest (halves up).

    Positive when end is later than start. None if either side is missing.
    """
    if start is None or end is None:
        return None
    minutes = (end - start).total_seconds() / 60
    return math.floor(minutes + 0.5)


@dataclass(frozen=True)
class FlightRecord:
    """
    One scheduled operation of a flight number.

    Read-only view over an AeroAPI flight object. Airport codes prefer the
    ICAO form and fall back to IATA.
    """
    id: str
    ident: Optional[str] = None
    ident_iata: Optional[str] = None
    operator: Optional[str] = None
    operator_icao: Optional[str] = None
    operator_iata: Optional[str] = None
    registration: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None

    scheduled_off: Optional[datetime] = None
    estimated_off: Optional[datetime] = None
    actual_off: Optional[datetime] = None
    scheduled_in: Optional[datetime] = None
    estimated_in: Optional[datetime] = None
    actual_in: Optional[datetime] = None

    status: str = ''

    # Display-only fields
    aircraft_type: Optional[str] = None
    origin_iata: Optional[str] = None
    origin_name: Optional[str] = None
    destination_iata: Optional[str] = None
    destination_name: Optional[str] = None
    last_position: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    @classmethod
    def from_aeroapi(cls, data: Dict[str, Any]) -> Optional['FlightRecord']:
        """
        Build a record from an AeroAPI flight object.

        Returns None if the object has no flight id.
        """
        flight_id = data.get('fa_flight_id')
        if not flight_id:
            return None

        origin = data.get('origin') or {}
        destination = data.get('destination') or {}

        return cls(
            id=flight_id,
            ident=data.get('ident'),
            ident_iata=data.get('ident_iata'),
            operator=data.get('operator'),
            operator_icao=data.get('operator_icao'),
            operator_iata=data.get('operator_iata'),
            registration=data.get('registration') or None,
            origin=origin.get('code_icao') or origin.get('code_iata') or origin.get('code'),
            destination=destination.get('code_icao') or destination.get('code_iata') or destination.get('code'),
            scheduled_off=parse_timestamp(data.get('scheduled_off')),
            estimated_off=parse_timestamp(data.get('estimated_off')),
            actual_off=parse_timestamp(data.get('actual_off')),
            scheduled_in=parse_timestamp(data.get('scheduled_in')),
            estimated_in=parse_timestamp(data.get('estimated_in')),
            actual_in=parse_timestamp(data.get('actual_in')),
            status=data.get('status') or '',
            aircraft_type=data.get('aircraft_type'),
            origin_iata=origin.get('code_iata'),
            origin_name=origin.get('name'),
            destination_iata=destination.get('code_iata'),
            destination_name=destination.get('name'),
            last_position=data.get('last_position'),
        )

    @property
    def has_departed(self) -> bool:
        return self.actual_off is not None

    @property
    def has_landed(self) -> bool:
        return self.actual_in is not None

    @property
    def departure_time(self) -> Optional[datetime]:
        """Scheduled departure, or the estimate if no schedule is published."""
        return self.scheduled_off or self.estimated_off

    @property
    def arrival_time(self) -> Optional[datetime]:
        """Scheduled arrival, or the estimate if no schedule is published."""
        return self.scheduled_in or self.estimated_in

    @property
    def expected_arrival(self) -> Optional[datetime]:
        """Best current guess at arrival (estimate over schedule)."""
        return self.estimated_in or self.scheduled_in

    @property
    def operator_codes(self) -> frozenset:
        """Every airline code this record is known under."""
        return frozenset(
            code for code in (self.operator, self.operator_icao, self.operator_iata) if code
        )

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'id': self.id,
            'ident': self.ident,
            'ident_iata': self.ident_iata,
            'operator': self.operator,
            'status': self.status,
            'registration': self.registration,
            'aircraft_type': self.aircraft_type,
            'origin': {
                'code': self.origin_iata or self.origin,
                'name': self.origin_name,
            },
            'destination': {
                'code': self.destination_iata or self.destination,
                'name': self.destination_name,
            },
            'times': {
                'scheduled_off': format_timestamp(self.scheduled_off),
                'estimated_off': format_timestamp(self.estimated_off),
                'actual_off': format_timestamp(self.actual_off),
                'scheduled_in': format_timestamp(self.scheduled_in),
                'estimated_in': format_timestamp(self.estimated_in),
                'actual_in': format_timestamp(self.actual_in),
            },
            'position': self.last_position,
        }
