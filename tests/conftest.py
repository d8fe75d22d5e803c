import pytest

from helpers import FakeAuthServer, FakeFlightSource, FakeHTTPSession, at

from tailwatch.app import create_app
from tailwatch.auth import SessionVerifier
from tailwatch.config import AuthConfig
from tailwatch.models import create_db_engine, create_session_factory, init_db
from tailwatch.prediction import DelayPredictor

AUTH_SETTINGS = AuthConfig(central_auth_url='https://auth.test')


@pytest.fixture
def db_session_factory():
    """Fresh in-memory database per test."""
    engine = create_db_engine('sqlite://')
    init_db(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def auth_server():
    return FakeAuthServer(AUTH_SETTINGS.cookie_name)


@pytest.fixture
def session_verifier(auth_server):
    return SessionVerifier(settings=AUTH_SETTINGS, session=FakeHTTPSession(auth_server))


@pytest.fixture
def flight_source():
    return FakeFlightSource()


@pytest.fixture
def app(flight_source, session_verifier, db_session_factory):
    predictor = DelayPredictor(flight_source, clock=lambda: at(-60))
    app = create_app(
        predictor=predictor,
        session_verifier=session_verifier,
        db_session_factory=db_session_factory,
    )
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signed_in():
    """Request headers carrying a valid session."""
    return {'X-Session-Id': 'alice-token'}
