"""
Flight-number search: pick the operation the user most likely means.

A flight number maps to many scheduled operations, past and future.
With a date, the first operation departing that (UTC) day is chosen.
Without one, today's operation is preferred, then the next upcoming
one; operations scheduled more than six hours ago are ignored.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from tailwatch.prediction.records import FlightRecord

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=6)
MAX_DAYS_AHEAD = 2


class FlightSearchError(ValueError):
    """The search request cannot be answered; carries an HTTP status."""

    def __init__(self, message: str, status_code: int = 400, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


@dataclass
class SearchResult:
    flight: Optional[FlightRecord]
    candidates: int


def parse_search_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD query value. Raises FlightSearchError if invalid."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise FlightSearchError('Invalid date format')


def _day_bounds(day: date):
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def select_flight(
    flights: List[FlightRecord],
    now: datetime,
    requested: Optional[date] = None,
) -> SearchResult:
    """
    Choose the most relevant operation.

    Raises:
        FlightSearchError: the requested date is too far ahead, or lies in
            the future and has no published operation yet.
    """
    if requested is not None:
        day_start, day_end = _day_bounds(requested)
        if day_start > now + timedelta(days=MAX_DAYS_AHEAD):
            raise FlightSearchError(
                'Flight date is too far in the future. Flight information is typically '
                'available 1-2 days before departure.',
                details={'requested_date': requested.isoformat()},
            )
        relevant = [f for f in flights if f.scheduled_off and day_start <= f.scheduled_off < day_end]
    else:
        cutoff = now - RECENT_WINDOW
        relevant = [f for f in flights if f.scheduled_off and f.scheduled_off > cutoff]

    relevant.sort(key=lambda f: f.scheduled_off)

    if requested is not None:
        selected = relevant[0] if relevant else None
        if selected is None and day_start > now:
            raise FlightSearchError(
                f'No flight information available yet for {requested.isoformat()}',
                status_code=404,
                details={'requested_date': requested.isoformat(), 'available_flights': len(flights)},
            )
    else:
        today_start, today_end = _day_bounds(now.date())
        todays = next((f for f in relevant if today_start <= f.scheduled_off < today_end), None)
        selected = todays or (relevant[0] if relevant else None)

    logger.info(f'Found {len(relevant)} relevant flights, selected: {selected.id if selected else "none"}')
    return SearchResult(flight=selected, candidates=len(relevant))
