"""
Flight data API endpoints.

Provides endpoints for:
- GET /api/flights/search - Find the relevant operation of a flight number
- GET /api/flights/details/<flight_id> - Get single flight details
- GET /api/flights/track/<flight_id> - Get position history for a flight
- GET /api/flights/delay-prediction/<flight_id> - Predict delay for a flight

All endpoints require a verified session.
"""

import logging
import time

from flask import Blueprint, current_app, jsonify, request

from tailwatch.auth import require_session
from tailwatch.prediction import DelayPredictor, FlightDataError, FlightNotFoundError
from tailwatch.services.identifiers import to_icao_ident
from tailwatch.services.search import FlightSearchError, parse_search_date, select_flight

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')


def _predictor() -> DelayPredictor:
    return current_app.config['DELAY_PREDICTOR']


def _upstream_error(e: FlightDataError):
    logger.error(f'Upstream flight data error: {e}')
    return jsonify({'error': 'Flight data service unavailable'}), 502


@flights_bp.route('/search', methods=['GET'])
@require_session
def search_flight():
    """
    Find the operation of a flight number the user most likely means.

    Query parameters:
    - flightNumber: IATA or ICAO flight number (required)
    - date: YYYY-MM-DD (optional, defaults to today / next upcoming)
    """
    start_time = time.perf_counter()

    flight_number = request.args.get('flightNumber', '').strip()
    if not flight_number:
        return jsonify({'error': 'Flight number required'}), 400

    ident = to_icao_ident(flight_number)
    logger.info(f'Searching for flight {flight_number} (ICAO: {ident}), date: {request.args.get("date") or "today"}')

    try:
        requested = parse_search_date(request.args.get('date'))
        predictor = _predictor()
        flights = predictor.source.get_flights_by_ident(ident)
        result = select_flight(flights, predictor.clock(), requested)
    except FlightSearchError as e:
        return jsonify({'error': e.message, **e.details}), e.status_code
    except FlightDataError as e:
        return _upstream_error(e)

    flight_dicts = [result.flight.to_dict()] if result.flight else []
    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'flights': flight_dicts,
        'count': len(flight_dicts),
        'candidates': result.candidates,
        'query_time_ms': round(query_time_ms, 2),
    })


@flights_bp.route('/details/<flight_id>', methods=['GET'])
@require_session
def get_flight_details(flight_id: str):
    """Get detailed information for a single flight."""
    try:
        flight = _predictor().get_flight(flight_id)
    except FlightNotFoundError:
        return jsonify({'error': 'Flight not found'}), 404
    except FlightDataError as e:
        return _upstream_error(e)

    return jsonify(flight.to_dict())


@flights_bp.route('/track/<flight_id>', methods=['GET'])
@require_session
def get_flight_track(flight_id: str):
    """Position history for a flight, as reported upstream."""
    try:
        track = _predictor().source.get_track(flight_id)
    except FlightDataError as e:
        return _upstream_error(e)

    return jsonify(track)


@flights_bp.route('/delay-prediction/<flight_id>', methods=['GET'])
@require_session
def get_delay_prediction(flight_id: str):
    """
    Predict departure and arrival delay for a flight.

    Combines the flight's own estimates with the progress of the aircraft's
    inbound flight. Returns 404 if the flight is unknown.
    """
    start_time = time.perf_counter()

    try:
        prediction = _predictor().predict_delay(flight_id)
    except FlightNotFoundError:
        return jsonify({'error': 'Flight not found'}), 404
    except FlightDataError as e:
        return _upstream_error(e)

    result = prediction.to_dict()
    result['query_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
    return jsonify(result)
