"""
External integration services.

Handles third-party API calls with caching and graceful degradation
when services are unavailable.
"""

from tailwatch.services.aeroapi import AeroAPIClient, AeroAPIError
from tailwatch.services.identifiers import to_iata_ident, to_icao_ident
from tailwatch.services.search import FlightSearchError, select_flight

__all__ = [
    'AeroAPIClient',
    'AeroAPIError',
    'FlightSearchError',
    'select_flight',
    'to_iata_ident',
    'to_icao_ident',
]
