"""
Delay prediction entry point.

    predictor = DelayPredictor(aeroapi_client)
    prediction = predictor.predict_delay('UAL839-1700000000-airline-0123')

Each call is independent: the target flight is looked up, its inbound
aircraft resolved, and the two combined by the estimator. Predictions
are never cached; only the underlying upstream lookups may be.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from tailwatch.config import PredictionConfig, config
from tailwatch.prediction.errors import FlightNotFoundError
from tailwatch.prediction.estimator import DelayEstimator, DelayPrediction
from tailwatch.prediction.inbound import FlightDataSource, InboundResolver
from tailwatch.prediction.records import FlightRecord

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DelayPredictor:
    """
    Produces DelayPredictions from a flight data source.

    Args:
        source: Upstream flight data lookups.
        settings: Prediction tuning (defaults to application config).
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        source: FlightDataSource,
        settings: Optional[PredictionConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.source = source
        self.settings = settings or config.prediction
        self.clock = clock
        self.resolver = InboundResolver(source, self.settings)
        self.estimator = DelayEstimator(self.settings)

    def get_flight(self, flight_id: str) -> FlightRecord:
        """
        Look up one flight by id.

        Raises:
            FlightNotFoundError: nothing is known about flight_id.
            FlightDataError: the upstream lookup itself failed.
        """
        flights = self.source.get_flights_by_ident(flight_id)
        if not flights:
            raise FlightNotFoundError(flight_id)
        return flights[0]

    def predict_delay(self, flight_id: str) -> DelayPrediction:
        """Predict departure and arrival delay for a flight."""
        target = self.get_flight(flight_id)
        now = self.clock()

        inbound = self.resolver.resolve(target, now)
        prediction = self.estimator.estimate(target, inbound, now)

        logger.info(
            f'Predicted {target.ident}: departure {prediction.departure_delay}min, '
            f'arrival {prediction.arrival_delay}min, reason={prediction.delay_reason}'
        )
        return prediction
