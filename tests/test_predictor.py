import pytest

from helpers import T0, FakeFlightSource, at, make_flight

from tailwatch.prediction import (
    Confidence,
    DelayPredictor,
    DelayReason,
    FlightDataError,
    FlightNotFoundError,
    Reliability,
)

REG = 'VT-IZA'
FLIGHT_ID = 'IGO412-1773489600-schedule-0001'


def _predictor(source, now=at(-60)):
    return DelayPredictor(source, clock=lambda: now)


def test_predicts_delay_from_late_inbound_aircraft() -> None:
    target = make_flight(FLIGHT_ID, registration=REG, scheduled_off=T0, scheduled_in=at(130))
    inbound = make_flight('IGO211-1773475200-schedule-0002', ident='IGO211', ident_iata='6E211',
                          registration=REG, scheduled_off=at(-160), scheduled_in=at(-10), actual_off=at(-100))
    source = FakeFlightSource(flights={FLIGHT_ID: [target], REG: [target, inbound]})

    prediction = _predictor(source).predict_delay(FLIGHT_ID)

    assert prediction.flight_id == FLIGHT_ID
    assert prediction.inbound_flight_id == inbound.id
    assert prediction.departure_delay == 20
    assert prediction.arrival_delay == 20
    assert prediction.confidence is Confidence.HIGH
    assert prediction.on_time_reliability is Reliability.HIGH
    assert prediction.delay_reason is DelayReason.INBOUND
    assert source.calls == [('ident', FLIGHT_ID), ('ident', REG)]


def test_departed_flight_without_history_reports_departure_delay() -> None:
    target = make_flight(FLIGHT_ID, registration=REG, scheduled_off=T0, scheduled_in=at(130), actual_off=at(20))
    source = FakeFlightSource(flights={FLIGHT_ID: [target]})

    prediction = _predictor(source, now=at(30)).predict_delay(FLIGHT_ID)

    assert prediction.departure_delay == 20
    assert prediction.arrival_delay == 20
    assert prediction.has_inbound_data is False
    assert prediction.delay_reason is DelayReason.DEPARTURE
    assert prediction.confidence is Confidence.MEDIUM
    assert prediction.on_time_reliability is Reliability.MEDIUM


def test_unknown_flight_raises_not_found() -> None:
    with pytest.raises(FlightNotFoundError) as excinfo:
        _predictor(FakeFlightSource()).predict_delay('nope')
    assert excinfo.value.flight_id == 'nope'


def test_target_lookup_failure_propagates() -> None:
    source = FakeFlightSource(failing_idents=(FLIGHT_ID,))
    with pytest.raises(FlightDataError):
        _predictor(source).predict_delay(FLIGHT_ID)


def test_inbound_lookup_failure_degrades_to_schedule_only() -> None:
    target = make_flight(FLIGHT_ID, registration=REG, scheduled_off=T0, scheduled_in=at(130), estimated_off=at(10))
    source = FakeFlightSource(flights={FLIGHT_ID: [target]}, failing_idents=(REG,))

    prediction = _predictor(source).predict_delay(FLIGHT_ID)

    assert prediction.departure_delay == 10
    assert prediction.has_inbound_data is False
    assert prediction.on_time_reliability is Reliability.LOW


def test_probabilistic_prediction_without_tail_number() -> None:
    target = make_flight(FLIGHT_ID, scheduled_off=T0, scheduled_in=at(130))
    candidate = make_flight('IGO101-1773468000-schedule-0003', ident='IGO101', registration='VT-AAA',
                            scheduled_off=at(-180), scheduled_in=at(-60), actual_off=at(-175), actual_in=at(-35))
    source = FakeFlightSource(flights={FLIGHT_ID: [target]}, completed=[candidate])

    prediction = _predictor(source, now=at(-20)).predict_delay(FLIGHT_ID)

    assert prediction.is_probabilistic is True
    assert prediction.probabilistic_candidates == 1
    assert prediction.aircraft_registration == 'VT-AAA'
    assert prediction.inbound_delay_impact == 25
    assert prediction.current_delay == 25
    assert prediction.confidence is Confidence.MEDIUM
    assert prediction.delay_reason is DelayReason.PROBABLE_INBOUND


def test_each_prediction_fetches_fresh_data() -> None:
    target = make_flight(FLIGHT_ID, scheduled_off=T0, scheduled_in=at(130), registration=REG)
    source = FakeFlightSource(flights={FLIGHT_ID: [target], REG: [target]})
    predictor = _predictor(source)

    predictor.predict_delay(FLIGHT_ID)
    predictor.predict_delay(FLIGHT_ID)

    assert source.calls.count(('ident', FLIGHT_ID)) == 2
