from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, jsonify, current_app, g
import uuid
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_jwt_extended.exceptions import NoAuthorizationError # For JWT specific errors
from sqlalchemy.exc import SQLAlchemyError # For database errors
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException # Renamed to avoid conflict
from marshmallow import ValidationError
from http import HTTPStatus
from collections import Counter
import logging
import click
from pythonjsonlogger import jsonlogger

from roulette_be.exceptions import AppException
from roulette_be.error_codes import ErrorCodes
from .models import db # Relative import
from .config import Config # Relative import
from .routes.roulette import roulette_bp
from .services.ledger_service import LedgerService
from .services.history_service import HistoryService
from .services.round_engine import RoundEngine
from .utils.board import BOARD_CELLS
from .utils.roulette_helper import spin_wheel
from .utils.security import limiter, secure_headers

# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        try:
            record.request_id = g.get('request_id', 'N/A')
        except RuntimeError:
            # Outside application context (CLI, background work)
            record.request_id = 'N/A'
        return True


def configure_logging(app):
    # Package logger: app.logger ('roulette_be.app'), services and the audit log all propagate here
    package_logger = logging.getLogger('roulette_be')
    if not app.debug and not app.testing:
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(request_id)s %(name)s %(module)s %(funcName)s %(lineno)d %(message)s'
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        if package_logger.hasHandlers():
            package_logger.handlers.clear()
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.INFO)
    else:
        # Basic logging for debug/test runs if not already configured
        if not logging.getLogger().handlers:
            logging.basicConfig(level=logging.DEBUG)
        package_logger.setLevel(logging.DEBUG)


def _error_response(error_code, status_message, status_code, details=None, action_button=None):
    return jsonify({
        'request_id': g.get('request_id', 'N/A'),
        'status': False,
        'error_code': error_code,
        'status_message': status_message,
        'details': details or {},
        'action_button': action_button
    }), status_code


def register_error_handlers(app):
    @app.errorhandler(AppException)
    def handle_app_exception(e):
        request_id = g.get('request_id', 'N/A')
        log = current_app.logger.error if e.status_code >= 500 else current_app.logger.warning
        log(
            f"Request ID: {request_id} - AppException: {e.error_code} - {e.status_message} - Details: {e.details}",
            exc_info=e.status_code >= 500 # Log stack trace for server errors
        )
        return _error_response(e.error_code, e.status_message, e.status_code, e.details, e.action_button or None)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        # Marshmallow errors that escaped a route
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - Validation error: {e.messages} - Error Code: {ErrorCodes.VALIDATION_ERROR}"
        )
        return _error_response(ErrorCodes.VALIDATION_ERROR, 'Input validation failed.',
                               HTTPStatus.UNPROCESSABLE_ENTITY, {'errors': e.messages})

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        current_app.logger.error(
            f"Request ID: {g.get('request_id', 'N/A')} - Database error. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return _error_response(ErrorCodes.INTERNAL_SERVER_ERROR, 'A database error occurred. Please try again later.',
                               HTTPStatus.INTERNAL_SERVER_ERROR)

    @app.errorhandler(NoAuthorizationError)
    def handle_no_auth_error(e):
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - JWT NoAuthorizationError: {str(e)} - Error Code: {ErrorCodes.UNAUTHENTICATED}"
        )
        return _error_response(ErrorCodes.UNAUTHENTICATED, 'Missing or invalid authorization token.',
                               HTTPStatus.UNAUTHORIZED, {'original_error': str(e)})

    @app.errorhandler(WerkzeugHTTPException)
    def handle_werkzeug_http_exception(e):
        error_code = ErrorCodes.GENERIC_ERROR
        if e.code == 404:
            error_code = ErrorCodes.NOT_FOUND
        elif e.code == 405:
            error_code = ErrorCodes.METHOD_NOT_ALLOWED
        elif e.code == 429:
            error_code = ErrorCodes.RATE_LIMITED
        elif e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR

        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - Werkzeug HTTPException: {e.code} - {e.name}: {e.description} - Error Code: {error_code}"
        )
        return _error_response(error_code, e.name, e.code, {'description': e.description})

    # --- Global Error Handler (catch-all for general exceptions) ---
    @app.errorhandler(Exception)
    def handle_global_exception(e):
        current_app.logger.critical(
            f"Request ID: {g.get('request_id', 'N/A')} - Unhandled Critical Exception. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return _error_response(ErrorCodes.INTERNAL_SERVER_ERROR,
                               'An unexpected internal server error occurred. Please try again later.',
                               HTTPStatus.INTERNAL_SERVER_ERROR)


def register_cli(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Creates the credit, ledger and history tables."""
        db.create_all()
        click.echo("Roulette tables created.")

    @app.cli.command('wheel-check')
    @click.option('-n', '--spins', type=int, default=38_000, help='Number of outcomes to draw (default: 38,000)')
    def wheel_check_command(spins):
        """Draws outcomes and reports per-cell frequencies and a chi-square statistic."""
        if spins < len(BOARD_CELLS):
            click.echo(f"Need at least {len(BOARD_CELLS)} spins.")
            return
        tally = Counter(spin_wheel() for _ in range(spins))
        expected = spins / len(BOARD_CELLS)
        chi_square = sum((tally[cell] - expected) ** 2 / expected for cell in BOARD_CELLS)
        for cell in BOARD_CELLS:
            click.echo(f"{cell:>3}: {tally[cell]:>8} ({tally[cell] / spins:.4%})")
        # 37 degrees of freedom; 99.9th percentile is about 69.3
        click.echo(f"chi-square: {chi_square:.2f} (df=37, p<0.001 threshold 69.35)")


def create_app(config_class=Config):
    """Application factory."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # --- CORS Setup ---
    allowed_origins = list(app.config.get('CORS_ORIGINS_LIST') or [])
    if app.debug:
        allowed_origins.extend(["http://localhost:8080", "http://127.0.0.1:8080"])
    if allowed_origins:
        CORS(app,
             origins=allowed_origins,
             supports_credentials=True,
             methods=['GET', 'POST', 'OPTIONS'],
             allow_headers=['Content-Type', 'Authorization', 'X-CSRF-Token'],
             max_age=86400)
        app.logger.info(f"CORS configured for origins: {allowed_origins}")
    else:
        app.logger.warning("No CORS origins configured - API will reject cross-origin requests")

    # --- Request ID Middleware ---
    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())

    @app.after_request
    def security_headers_middleware(response):
        response.headers['X-Request-ID'] = g.get('request_id', 'N/A')
        return secure_headers(response)

    # --- Rate Limiter Setup ---
    if app.config.get("TESTING"):
        app.config['RATELIMIT_ENABLED'] = False
    else:
        app.config.setdefault('RATELIMIT_ENABLED', True)
    limiter.init_app(app)

    # --- Database Setup ---
    db.init_app(app)

    # --- JWT Setup ---
    JWTManager(app)

    # --- Roulette engine (shared across requests; holds the per-player locks) ---
    app.extensions['roulette_engine'] = RoundEngine(
        ledger=LedgerService(starting_credits=app.config['ROULETTE_STARTING_CREDITS']),
        history=HistoryService(),
        strict_bet_multiplier=app.config.get('ROULETTE_STRICT_BET_MULTIPLIER', False)
    )

    register_error_handlers(app)
    register_cli(app)
    app.register_blueprint(roulette_bp)

    if not app.debug and not app.testing and app.config.get('RATELIMIT_STORAGE_URI') == 'memory://':
        app.logger.warning(
            "RATELIMIT_STORAGE_URI is 'memory://'; limits are per process. "
            "Use Redis (e.g., 'redis://localhost:6379/0') for multi-process deployments."
        )

    return app


# Add main section to run the app
if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000, debug=app.debug)
