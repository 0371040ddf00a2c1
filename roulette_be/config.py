"""
Configuration module with fail-fast validation.

All configuration values are validated at startup with no insecure defaults.
Production environments must provide all required environment variables.
"""
from dotenv import load_dotenv

from .config_validator import validate_production_config

load_dotenv()

class Config:
    """Production-ready configuration with fail-fast validation."""

    _validated_config = validate_production_config()

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = _validated_config['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Configuration - identity comes from tokens issued by the host application
    JWT_SECRET_KEY = _validated_config['JWT_SECRET_KEY']
    JWT_ACCESS_TOKEN_EXPIRES = _validated_config['JWT_ACCESS_TOKEN_EXPIRES']
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_ACCESS_CSRF_HEADER_NAME = 'X-CSRF-Token'

    # Rate Limiter Storage URI
    RATELIMIT_STORAGE_URI = _validated_config['RATELIMIT_STORAGE_URI']

    # CORS Configuration
    CORS_ORIGINS_LIST = _validated_config['CORS_ORIGINS']

    DEBUG = _validated_config['DEBUG']

    # Roulette table settings
    ROULETTE_ENABLED = _validated_config['ROULETTE_ENABLED']
    ROULETTE_STARTING_CREDITS = _validated_config['ROULETTE_STARTING_CREDITS']
    ROULETTE_HISTORY_PER_PAGE = _validated_config['ROULETTE_HISTORY_PER_PAGE']
    ROULETTE_STRICT_BET_MULTIPLIER = _validated_config['ROULETTE_STRICT_BET_MULTIPLIER']
    ROULETTE_SPIN_RATE_LIMIT = _validated_config['ROULETTE_SPIN_RATE_LIMIT']


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///./test_roulette_be_isolated.db' # File-based for test isolation using SQLite
    # Define a key to store the database file path for easy cleanup
    DATABASE_FILE_PATH = SQLALCHEMY_DATABASE_URI.replace('sqlite:///', '')
    JWT_SECRET_KEY = 'test-jwt-secret-key-that-is-long-enough-for-hs256'
    JWT_COOKIE_CSRF_PROTECT = False # Disable JWT CSRF for tests
    # Disable rate limiting for tests
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'
    ROULETTE_ENABLED = True
    ROULETTE_STRICT_BET_MULTIPLIER = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
