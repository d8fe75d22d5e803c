"""
Flight number conversion between IATA and ICAO airline designators.

AeroAPI matches flight idents most reliably in ICAO form, while users
type the IATA form printed on boarding passes:

    6E412  -> IGO412
    AA 839 -> AAL839
    UAL567 -> UAL567 (already ICAO)
"""

import re
from typing import Dict

# IATA -> ICAO airline codes
AIRLINE_CODES: Dict[str, str] = {
    '6E': 'IGO',  # IndiGo
    'AI': 'AIC',  # Air India
    'SG': 'SEJ',  # SpiceJet
    'UK': 'VTI',  # Vistara
    'G8': 'GOW',  # Go First
    'QP': 'AKJ',  # Akasa Air
    'AA': 'AAL',  # American Airlines
    'DL': 'DAL',  # Delta
    'UA': 'UAL',  # United
    'WN': 'SWA',  # Southwest
    'B6': 'JBU',  # JetBlue
    'AS': 'ASA',  # Alaska
    'F9': 'FFT',  # Frontier
    'NK': 'NKS',  # Spirit
    'AC': 'ACA',  # Air Canada
    'WS': 'WJA',  # WestJet
    'BA': 'BAW',  # British Airways
    'LH': 'DLH',  # Lufthansa
    'AF': 'AFR',  # Air France
    'KL': 'KLM',  # KLM
    'EK': 'UAE',  # Emirates
    'QR': 'QTR',  # Qatar Airways
    'EY': 'ETD',  # Etihad
    'SQ': 'SIA',  # Singapore
    'CX': 'CPA',  # Cathay Pacific
    'QF': 'QFA',  # Qantas
    'NH': 'ANA',  # All Nippon
    'JL': 'JAL',  # Japan Airlines
    'OO': 'SKW',  # SkyWest
    'YX': 'RPA',  # Republic
    'MQ': 'ENY',  # Envoy
}

ICAO_TO_IATA: Dict[str, str] = {icao: iata for iata, icao in AIRLINE_CODES.items()}

_ICAO_IDENT = re.compile(r'^[A-Z]{3}\d+[A-Z]?$')
_IATA_IDENT = re.compile(r'^([A-Z0-9]{2})[\s-]?(\d+[A-Z]?)$', re.IGNORECASE)


def normalize_ident(flight_number: str) -> str:
    """Upper-case and strip surrounding whitespace."""
    return flight_number.strip().upper()


def to_icao_ident(flight_number: str) -> str:
    """
    Convert an IATA flight number to ICAO form.

    Idents that already look like ICAO, or whose airline is not in the
    table, are returned normalized but otherwise unchanged.
    """
    ident = normalize_ident(flight_number)
    if _ICAO_IDENT.match(ident):
        return ident

    match = _IATA_IDENT.match(ident)
    if not match:
        return ident

    airline, number = match.groups()
    icao = AIRLINE_CODES.get(airline.upper())
    return f'{icao}{number}' if icao else ident


def to_iata_ident(flight_number: str) -> str:
    """Convert an ICAO flight number (AAL839) to IATA form (AA839)."""
    ident = normalize_ident(flight_number)
    if len(ident) >= 3 and ident[:3] in ICAO_TO_IATA:
        return ICAO_TO_IATA[ident[:3]] + ident[3:]
    return ident
