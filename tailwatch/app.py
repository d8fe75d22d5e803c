"""
TailWatch Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- AeroAPI client with its response cache
- Delay predictor
- Session verification and rate limiting
- API routes
- Static file serving

Usage:
    python -m tailwatch.app

Or with gunicorn:
    gunicorn "tailwatch.app:create_app()"
"""

import logging
import os
from typing import Optional

from flask import Flask, send_from_directory
from flask_cors import CORS
from sqlalchemy.orm import sessionmaker

from tailwatch.api import auth_bp, flights_bp
from tailwatch.auth import SessionVerifier
from tailwatch.cache import ExpiringStore
from tailwatch.config import config
from tailwatch.models import SessionLocal, init_db
from tailwatch.prediction import DelayPredictor
from tailwatch.ratelimit import RateLimiter, limit_blueprint
from tailwatch.services import AeroAPIClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    predictor: Optional[DelayPredictor] = None,
    session_verifier: Optional[SessionVerifier] = None,
    db_session_factory: Optional[sessionmaker] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        predictor: Delay predictor (built on an AeroAPI client if None).
        session_verifier: Central-auth verifier (built from config if None).
        db_session_factory: SQLAlchemy session factory. When None the
                            configured database is used and its schema created.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(
        __name__,
        static_folder='../frontend/dist',
        static_url_path='',
    )

    app.config['SECRET_KEY'] = config.secret_key

    # Frontend sends the session cookie cross-origin in development
    CORS(app, resources={r'/api/*': {'origins': config.origin}}, supports_credentials=True)

    if db_session_factory is None:
        logger.info('Initializing database...')
        init_db()
        db_session_factory = SessionLocal
    app.config['DB_SESSION_FACTORY'] = db_session_factory

    if predictor is None:
        if not config.aeroapi.is_configured:
            logger.warning('FLIGHTAWARE_API_KEY not set - flight lookups will fail')
        cache = ExpiringStore(
            ttl_seconds=config.cache.ttl_seconds,
            max_entries=config.cache.max_entries,
        )
        predictor = DelayPredictor(AeroAPIClient.from_config(cache=cache))
    app.config['DELAY_PREDICTOR'] = predictor

    app.config['SESSION_VERIFIER'] = session_verifier or SessionVerifier()

    # Register API blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(flights_bp)

    limits = config.rate_limit
    limit_blueprint(
        app, auth_bp.name,
        RateLimiter(limits.auth_max_requests, limits.auth_window_seconds),
        'Too many authentication attempts. Please try again in 15 minutes.',
    )
    limit_blueprint(
        app, flights_bp.name,
        RateLimiter(limits.api_max_requests, limits.api_window_seconds),
        'Too many API requests. Please slow down.',
    )

    # -------------------------------------------------------------------------
    # Frontend routes
    # -------------------------------------------------------------------------

    @app.route('/')
    def index():
        """Serve the single-page frontend."""
        return send_from_directory(app.static_folder, 'index.html')

    @app.route('/api/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {'error': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 3000))

    logger.info(f'Starting TailWatch on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
    )


if __name__ == '__main__':
    run_development_server()
