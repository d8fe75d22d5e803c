"""Exceptions raised by the prediction engine and its data sources."""


class FlightDataError(Exception):
    """A flight data lookup could not be completed (network, HTTP, payload)."""


class FlightNotFoundError(LookupError):
    """The flight to predict does not exist upstream."""

    def __init__(self, flight_id: str):
        super().__init__(f'Flight not found: {flight_id}')
        self.flight_id = flight_id
