"""
Inbound aircraft resolution.

Finds the flight the target's aircraft operates immediately before the
target, so its delay can be propagated forward. Two strategies:

1. Confirmed: the target carries a tail number. Pull that aircraft's
   flight history and take the closest preceding arrival.
2. Probabilistic: no tail number. Look at arrivals of the same airline
   into the target's origin airport in the hours before departure. If
   exactly one fits, assume it is our aircraft.

A wrong inbound guess actively misleads the delay estimate, so the
probabilistic path prefers silence over a guess whenever more than one
candidate fits.

Upstream failures never escape this module: they degrade to "no match".
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Protocol

from tailwatch.config import PredictionConfig, config
from tailwatch.prediction.errors import FlightDataError
from tailwatch.prediction.records import FlightRecord, minutes_between

logger = logging.getLogger(__name__)


class FlightDataSource(Protocol):
    """The lookups the resolver needs from the upstream provider."""

    def get_flights_by_ident(self, ident: str) -> List[FlightRecord]:
        ...

    def get_scheduled_arrivals(self, airport: str, airline: Optional[str] = None) -> List[FlightRecord]:
        ...

    def get_completed_arrivals(self, airport: str, start: datetime, end: datetime) -> List[FlightRecord]:
        ...


@dataclass(frozen=True)
class InboundResult:
    """
    Outcome of an inbound lookup.

    ``flight`` is None when nothing was matched. ``probabilistic_candidates``
    is set on the probabilistic path: 1 for a match, or the number of
    competing candidates when the lookup was too ambiguous to guess.
    """
    flight: Optional[FlightRecord] = None
    is_probabilistic: bool = False
    probabilistic_reason: Optional[str] = None
    probabilistic_candidates: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.flight is not None


NO_MATCH = InboundResult()


class InboundResolver:
    """Resolves the inbound flight for a target flight."""

    def __init__(self, source: FlightDataSource, settings: Optional[PredictionConfig] = None):
        self.source = source
        self.settings = settings or config.prediction

    def resolve(self, target: FlightRecord, now: datetime) -> InboundResult:
        """
        Find the flight the target's aircraft flies immediately before it.

        Args:
            target: The flight being predicted.
            now: Current time (aware), used to check that a probable
                 inbound flight has at least nominally started its trip.
        """
        if target.registration:
            return self._resolve_by_registration(target)

        logger.info(f'No registration for {target.ident} - attempting probabilistic inbound detection')
        return self._resolve_probabilistic(target, now)

    # -------------------------------------------------------------------------
    # Confirmed path
    # -------------------------------------------------------------------------

    def _resolve_by_registration(self, target: FlightRecord) -> InboundResult:
        registration = target.registration
        if target.scheduled_off is None:
            logger.info(f'{target.ident} has no scheduled departure - cannot place inbound flight')
            return NO_MATCH

        logger.info(f'Looking up history for aircraft {registration} to find inbound flight for {target.ident}')
        try:
            history = self.source.get_flights_by_ident(registration)
        except FlightDataError as e:
            logger.warning(f'Could not fetch history for {registration}: {e}')
            return NO_MATCH
        except Exception:
            logger.exception(f'Unexpected error fetching history for {registration}')
            return NO_MATCH

        inbound = select_preceding_arrival(target, history)
        if inbound is None:
            logger.info(f'No previous flight found for {registration} before {target.ident}')
            return NO_MATCH

        gap = target.scheduled_off - inbound.scheduled_in
        if gap > timedelta(hours=self.settings.stale_inbound_hours):
            hours = gap.total_seconds() / 3600
            logger.info(f'Ignoring stale inbound {inbound.ident} for {target.ident} - arrived {hours:.1f}h before departure')
            return NO_MATCH

        logger.info(f'Found inbound flight {inbound.ident} ({inbound.id}) for {target.ident}')
        return InboundResult(flight=inbound)

    # -------------------------------------------------------------------------
    # Probabilistic path
    # -------------------------------------------------------------------------

    def _resolve_probabilistic(self, target: FlightRecord, now: datetime) -> InboundResult:
        airport = target.origin
        operator = target.operator or target.operator_icao
        if not airport or not operator or target.scheduled_off is None:
            return NO_MATCH

        window_start = target.scheduled_off - timedelta(hours=self.settings.probabilistic_window_hours)
        window_end = target.scheduled_off - timedelta(minutes=self.settings.probabilistic_min_gap_minutes)

        logger.info(f'Searching for probable inbound {operator} flights to {airport}')
        try:
            arrivals = self._fetch_arrivals(airport, operator, window_start, window_end)
        except FlightDataError as e:
            logger.warning(f'Probabilistic detection failed for {target.ident}: {e}')
            return NO_MATCH
        except Exception:
            logger.exception(f'Unexpected error during probabilistic detection for {target.ident}')
            return NO_MATCH

        candidates = filter_candidates(target, arrivals, window_start, window_end)
        logger.info(f'Found {len(candidates)} potential inbound {operator} flights at {airport}')

        if not candidates:
            return NO_MATCH

        if len(candidates) > self.settings.max_probabilistic_candidates:
            logger.info(f'{len(candidates)} candidate inbound flights - too ambiguous to guess')
            return InboundResult(probabilistic_candidates=len(candidates))

        # Ties on arrival time break on id so the choice is stable
        candidate = min(candidates, key=lambda f: (-f.arrival_time.timestamp(), f.id))

        if not candidate.registration:
            logger.info(f'Single candidate {candidate.ident} has no tail number - skipping')
            return NO_MATCH

        departure = candidate.departure_time
        if departure is None or now <= departure:
            logger.info(f'Candidate {candidate.ident} has not departed yet - skipping')
            return NO_MATCH

        turnaround = minutes_between(candidate.arrival_time, target.scheduled_off)
        logger.info(f'Using probabilistic inbound {candidate.ident} ({candidate.id}) for {target.ident}')
        return InboundResult(
            flight=candidate,
            is_probabilistic=True,
            probabilistic_reason=(
                f'Only inbound {operator} flight to {airport} arriving {turnaround} min before departure'
            ),
            probabilistic_candidates=len(candidates),
        )

    def _fetch_arrivals(
        self,
        airport: str,
        operator: str,
        start: datetime,
        end: datetime,
    ) -> List[FlightRecord]:
        """
        Scheduled and completed arrivals, merged by flight id.

        Flights move from the scheduled list to the completed list once
        they land, so both are needed. The two lookups are independent
        and run concurrently; completed data wins for the same flight.
        """
        with ThreadPoolExecutor(max_workers=2) as pool:
            scheduled_future = pool.submit(self.source.get_scheduled_arrivals, airport, operator)
            completed_future = pool.submit(self.source.get_completed_arrivals, airport, start, end)
            scheduled = scheduled_future.result()
            completed = completed_future.result()

        merged: Dict[str, FlightRecord] = {}
        for flight in scheduled:
            merged[flight.id] = flight
        for flight in completed:
            merged[flight.id] = flight

        logger.debug(f'{len(merged)} arrivals at {airport} ({len(scheduled)} scheduled + {len(completed)} completed)')
        return list(merged.values())


def select_preceding_arrival(target: FlightRecord, history: List[FlightRecord]) -> Optional[FlightRecord]:
    """
    The flight in history arriving closest before the target departs.

    Candidates need a scheduled arrival strictly before the target's
    scheduled departure. Identical arrival times resolve to the lowest id.
    """
    candidates = [
        f for f in history
        if f.id != target.id
        and f.scheduled_in is not None
        and f.scheduled_in < target.scheduled_off
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda f: (-f.scheduled_in.timestamp(), f.id))


def operators_match(target: FlightRecord, other: FlightRecord) -> bool:
    """True if the two records share any airline code (ICAO or IATA form)."""
    return bool(target.operator_codes & other.operator_codes)


def filter_candidates(
    target: FlightRecord,
    arrivals: List[FlightRecord],
    window_start: datetime,
    window_end: datetime,
) -> List[FlightRecord]:
    """Arrivals by the target's airline landing inside the window, excluding the target."""
    candidates = []
    for flight in arrivals:
        if flight.id == target.id:
            continue
        if not operators_match(target, flight):
            continue
        arrival = flight.arrival_time
        if arrival is None or not (window_start <= arrival <= window_end):
            continue
        candidates.append(flight)
    return candidates
