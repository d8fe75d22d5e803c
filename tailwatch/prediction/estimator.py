"""
Delay estimation.

Combines the target flight's own timestamps with what is known about
its inbound aircraft into a DelayPrediction.

Two independent grades accompany the numbers:

- confidence: how much the methodology behind the delay figure can be
  trusted (a confirmed inbound aircraft beats a probable one, which
  beats none).
- on_time_reliability: how much evidence backs an "on time" claim. A
  flight that is on time by schedule alone, with no inbound aircraft
  information, is graded low.

Missing timestamps are the normal case for flights far from departure.
They yield null fields, never errors.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from tailwatch.config import PredictionConfig, config
from tailwatch.prediction.inbound import InboundResult
from tailwatch.prediction.records import FlightRecord, format_timestamp, minutes_between

logger = logging.getLogger(__name__)


class Confidence(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'


class Reliability(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'
    UNKNOWN = 'unknown'


class DelayReason(str, Enum):
    CANCELLED = 'Flight cancelled'
    DIVERTED = 'Flight diverted'
    PROBABLE_INBOUND = 'Probable inbound aircraft delayed'
    INBOUND = 'Inbound aircraft delayed'
    DEPARTURE = 'Departure delay'
    EN_ROUTE = 'En-route delay'


@dataclass
class DelayPrediction:
    """
    Delay estimate for one flight.

    Delays are signed whole minutes (positive = late) or None when they
    cannot be determined. ``current_delay`` is the projected departure
    delay including inbound effects; ``predicted_delay`` mirrors the
    arrival delay.
    """
    flight_id: str
    flight_number: Optional[str]
    flight_number_iata: Optional[str]
    status: str

    scheduled_departure: Optional[datetime] = None
    estimated_departure: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    scheduled_arrival: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None

    departure_delay: Optional[int] = None
    arrival_delay: Optional[int] = None
    current_delay: Optional[int] = None
    predicted_delay: Optional[int] = None

    aircraft_registration: Optional[str] = None
    aircraft_model: Optional[str] = None
    current_position: Optional[dict] = None

    # Inbound aircraft
    has_inbound_data: bool = False
    inbound_flight_id: Optional[str] = None
    inbound_flight_iata: Optional[str] = None
    inbound_departed: Optional[bool] = None
    inbound_expected_arrival: Optional[datetime] = None
    inbound_delay_impact: Optional[int] = None

    is_probabilistic: bool = False
    probabilistic_reason: Optional[str] = None
    probabilistic_candidates: Optional[int] = None

    confidence: Confidence = Confidence.MEDIUM
    on_time_reliability: Reliability = Reliability.UNKNOWN
    delay_reason: Optional[DelayReason] = None

    def raise_delay(self, minutes: int) -> None:
        """Push the projected departure delay up to at least minutes."""
        self.current_delay = max(self.current_delay or 0, minutes)
        self.departure_delay = max(self.departure_delay or 0, minutes)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'flight_id': self.flight_id,
            'flight_number': self.flight_number,
            'flight_number_iata': self.flight_number_iata,
            'status': self.status,
            'scheduled_departure': format_timestamp(self.scheduled_departure),
            'estimated_departure': format_timestamp(self.estimated_departure),
            'actual_departure': format_timestamp(self.actual_departure),
            'scheduled_arrival': format_timestamp(self.scheduled_arrival),
            'estimated_arrival': format_timestamp(self.estimated_arrival),
            'actual_arrival': format_timestamp(self.actual_arrival),
            'departure_delay': self.departure_delay,
            'arrival_delay': self.arrival_delay,
            'current_delay': self.current_delay,
            'predicted_delay': self.predicted_delay,
            'delay_reason': self.delay_reason.value if self.delay_reason else None,
            'confidence': self.confidence.value,
            'on_time_reliability': self.on_time_reliability.value,
            'aircraft_registration': self.aircraft_registration,
            'aircraft_model': self.aircraft_model,
            'current_position': self.current_position,
            'has_inbound_data': self.has_inbound_data,
            'inbound_flight_id': self.inbound_flight_id,
            'inbound_flight_iata': self.inbound_flight_iata,
            'inbound_departed': self.inbound_departed,
            'inbound_expected_arrival': format_timestamp(self.inbound_expected_arrival),
            'inbound_delay_impact': self.inbound_delay_impact,
            'is_probabilistic': self.is_probabilistic,
            'probabilistic_reason': self.probabilistic_reason,
            'probabilistic_candidates': self.probabilistic_candidates,
        }


class DelayEstimator:
    """Turns a target flight plus inbound result into a DelayPrediction."""

    def __init__(self, settings: Optional[PredictionConfig] = None):
        self.settings = settings or config.prediction

    def estimate(
        self,
        target: FlightRecord,
        inbound: Optional[InboundResult],
        now: datetime,
    ) -> DelayPrediction:
        prediction = DelayPrediction(
            flight_id=target.id,
            flight_number=target.ident,
            flight_number_iata=target.ident_iata,
            status=target.status,
            scheduled_departure=target.scheduled_off,
            estimated_departure=target.estimated_off,
            actual_departure=target.actual_off,
            scheduled_arrival=target.scheduled_in,
            estimated_arrival=target.estimated_in,
            actual_arrival=target.actual_in,
            aircraft_registration=target.registration,
            aircraft_model=target.aircraft_type,
            current_position=target.last_position,
        )

        prediction.departure_delay = departure_delay(target)
        prediction.current_delay = prediction.departure_delay

        if inbound is not None:
            prediction.probabilistic_candidates = inbound.probabilistic_candidates
            if inbound.found:
                self._apply_inbound(prediction, target, inbound, now)

        prediction.arrival_delay = arrival_delay(target, fallback=prediction.departure_delay)
        prediction.predicted_delay = prediction.arrival_delay

        prediction.on_time_reliability = default_reliability(prediction, target)
        prediction.delay_reason = self._delay_reason(prediction, target)

        logger.debug(
            f'Prediction for {target.ident}: dep={prediction.departure_delay} arr={prediction.arrival_delay} '
            f'confidence={prediction.confidence.value} reliability={prediction.on_time_reliability.value}'
        )
        return prediction

    def _apply_inbound(
        self,
        prediction: DelayPrediction,
        target: FlightRecord,
        inbound: InboundResult,
        now: datetime,
    ) -> None:
        """Fold the inbound aircraft's progress into the prediction."""
        flight = inbound.flight

        prediction.has_inbound_data = True
        prediction.is_probabilistic = inbound.is_probabilistic
        prediction.probabilistic_reason = inbound.probabilistic_reason
        prediction.inbound_flight_id = flight.id
        prediction.inbound_flight_iata = flight.ident_iata
        # In the air: departed but not yet landed
        prediction.inbound_departed = flight.has_departed and not flight.has_landed
        prediction.inbound_expected_arrival = flight.expected_arrival
        if inbound.is_probabilistic and not prediction.aircraft_registration:
            prediction.aircraft_registration = flight.registration

        # A probable aircraft never earns more than medium
        if inbound.is_probabilistic:
            grade, reliability = Confidence.MEDIUM, Reliability.MEDIUM
        else:
            grade, reliability = Confidence.HIGH, Reliability.HIGH

        if flight.has_landed:
            # Reported even when zero or negative so "no impact" is explicit
            impact = minutes_between(flight.scheduled_in, flight.actual_in)
            prediction.inbound_delay_impact = impact
            prediction.confidence = grade
            prediction.on_time_reliability = reliability

            if not target.has_departed and impact is not None and impact > 0:
                if prediction.current_delay is None or impact > prediction.current_delay:
                    prediction.raise_delay(impact)

        elif not target.has_departed:
            self._apply_turnaround(prediction, target, flight, now, grade, reliability)

        else:
            # Actual departure already reflects whatever happened
            prediction.on_time_reliability = reliability

    def _apply_turnaround(
        self,
        prediction: DelayPrediction,
        target: FlightRecord,
        flight: FlightRecord,
        now: datetime,
        grade: Confidence,
        reliability: Reliability,
    ) -> None:
        """Inbound still on its way: is there enough ground time left?"""
        turnaround = self.settings.min_turnaround_minutes

        # Evidence exists even when it turns out favourable
        prediction.on_time_reliability = reliability

        until_departure = minutes_between(now, target.scheduled_off)
        until_inbound = minutes_between(now, flight.expected_arrival)
        if until_departure is None or until_inbound is None:
            return

        shortfall = 0
        if until_inbound > 0 and until_inbound + turnaround > until_departure:
            shortfall = until_inbound + turnaround - until_departure
            prediction.inbound_delay_impact = shortfall
            prediction.raise_delay(shortfall)
            prediction.confidence = grade
            logger.info(
                f'{target.ident}: inbound {flight.ident} arrives in {until_inbound}min, '
                f'departure in {until_departure}min -> predicted delay {shortfall}min'
            )

        # The inbound flight's own estimate may already show a delay
        own_delay = minutes_between(flight.scheduled_in, flight.estimated_in)
        if own_delay is not None and own_delay > 0:
            total = own_delay + shortfall
            prediction.inbound_delay_impact = total
            prediction.raise_delay(total)
            prediction.confidence = grade

    def _delay_reason(self, prediction: DelayPrediction, target: FlightRecord) -> Optional[DelayReason]:
        threshold = self.settings.reason_threshold_minutes
        # Early flights need no explanation: only lateness beyond the threshold counts
        delays = [
            d for d in (prediction.departure_delay, prediction.arrival_delay, prediction.current_delay)
            if d is not None
        ]
        if not delays or max(delays) <= threshold:
            return None

        status = target.status.strip().lower()
        if status.startswith('cancelled'):
            return DelayReason.CANCELLED
        if status.startswith('diverted'):
            return DelayReason.DIVERTED

        impact = prediction.inbound_delay_impact
        if impact is not None and impact > threshold:
            if prediction.is_probabilistic:
                return DelayReason.PROBABLE_INBOUND
            return DelayReason.INBOUND

        if not target.has_departed:
            if (prediction.current_delay or 0) > 0:
                return DelayReason.DEPARTURE
            return DelayReason.EN_ROUTE

        # Departed: was the delay already there at takeoff, or did it grow en route?
        departure = prediction.departure_delay
        arrival = prediction.arrival_delay
        if departure is not None and departure > threshold and (arrival is None or arrival <= departure):
            return DelayReason.DEPARTURE
        return DelayReason.EN_ROUTE


def departure_delay(flight: FlightRecord) -> Optional[int]:
    """Actual minus scheduled departure, else estimated minus scheduled."""
    if flight.actual_off is not None:
        return minutes_between(flight.scheduled_off, flight.actual_off)
    return minutes_between(flight.scheduled_off, flight.estimated_off)


def arrival_delay(flight: FlightRecord, fallback: Optional[int] = None) -> Optional[int]:
    """
    Actual minus scheduled arrival, else estimated minus scheduled.

    Without either, the departure delay is assumed to persist.
    """
    if flight.scheduled_in is not None:
        if flight.actual_in is not None:
            return minutes_between(flight.scheduled_in, flight.actual_in)
        if flight.estimated_in is not None:
            return minutes_between(flight.scheduled_in, flight.estimated_in)
    return fallback


def default_reliability(prediction: DelayPrediction, target: FlightRecord) -> Reliability:
    """Grade on-time evidence when the inbound aircraft told us nothing."""
    if prediction.on_time_reliability is not Reliability.UNKNOWN:
        return prediction.on_time_reliability
    if not prediction.has_inbound_data and not target.has_departed:
        # On time by schedule alone
        return Reliability.LOW
    if target.has_departed or target.has_landed:
        return Reliability.MEDIUM
    return Reliability.UNKNOWN
