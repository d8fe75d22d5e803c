"""
Delay prediction engine.

Resolves the aircraft's inbound flight and estimates departure/arrival
delay, a confidence grade, an on-time reliability grade and a reason.
"""

from tailwatch.prediction.errors import FlightDataError, FlightNotFoundError
from tailwatch.prediction.estimator import (
    Confidence,
    DelayEstimator,
    DelayPrediction,
    DelayReason,
    Reliability,
)
from tailwatch.prediction.inbound import FlightDataSource, InboundResolver, InboundResult
from tailwatch.prediction.predictor import DelayPredictor
from tailwatch.prediction.records import FlightRecord

__all__ = [
    'Confidence',
    'DelayEstimator',
    'DelayPrediction',
    'DelayPredictor',
    'DelayReason',
    'FlightDataError',
    'FlightDataSource',
    'FlightNotFoundError',
    'FlightRecord',
    'InboundResolver',
    'InboundResult',
    'Reliability',
]
