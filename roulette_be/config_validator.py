"""
Startup configuration checks for the roulette service.

Every setting is read from the environment once, at import of `config`.
In production a missing secret or an unsafe default aborts startup; in
development the same findings are downgraded to warnings and a local
fallback is used.
"""

import os
import sys
import warnings
import secrets
from decimal import Decimal, InvalidOperation
from typing import List, Tuple

SUPPORTED_DATABASE_SCHEMES = ('postgresql://', 'postgresql+psycopg2://', 'mysql+pymysql://', 'sqlite://')
DEV_DATABASE_URI = 'sqlite:///roulette_dev.db'
MIN_JWT_SECRET_LENGTH = 32


class ConfigValidationError(Exception):
    """Configuration is unusable; the service must not start."""


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't')


def _detect_production() -> bool:
    flask_env = os.getenv('FLASK_ENV', '').lower()
    if flask_env == 'production':
        return True
    return flask_env != 'development' and not _env_flag('FLASK_DEBUG', 'False')


class ConfigValidator:
    """
    Collects configuration findings, then fails or warns in one go.

    Production is assumed unless FLASK_ENV=development or FLASK_DEBUG is on.
    """

    def __init__(self, is_production: bool = None):
        self.is_production = _detect_production() if is_production is None else is_production
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _finding(self, message: str, always_error: bool = False):
        """Fatal in production (or when always_error), a warning otherwise."""
        if self.is_production or always_error:
            self.errors.append(f"CRITICAL: {message}")
        else:
            self.warnings.append(f"WARNING: {message}")

    @staticmethod
    def _read(name: str, default: str, parse, type_name: str):
        raw = os.getenv(name, default)
        try:
            return parse(raw)
        except (ValueError, InvalidOperation):
            raise ConfigValidationError(f"{name} must be {type_name}, got {raw!r}")

    def validate_jwt_config(self) -> Tuple[str, int]:
        """The host site issues the tokens; this service only verifies them with the shared secret."""
        jwt_secret = os.getenv('JWT_SECRET_KEY')
        if not jwt_secret:
            if self.is_production:
                raise ConfigValidationError("JWT_SECRET_KEY is required in production")
            self._finding("JWT_SECRET_KEY not set - generated a throwaway key, tokens will not survive a restart")
            jwt_secret = secrets.token_urlsafe(64)
        elif len(jwt_secret) < MIN_JWT_SECRET_LENGTH:
            self._finding(f"JWT_SECRET_KEY must be at least {MIN_JWT_SECRET_LENGTH} characters long")

        access_expires = self._read('JWT_ACCESS_TOKEN_EXPIRES', '3600', int, 'an integer')
        return jwt_secret, access_expires

    def validate_database_config(self) -> str:
        database_url = os.getenv('DATABASE_URL')
        if not database_url:
            self._finding(f"DATABASE_URL not set - using {DEV_DATABASE_URI}")
            return '' if self.is_production else DEV_DATABASE_URI

        if not database_url.startswith(SUPPORTED_DATABASE_SCHEMES):
            self._finding(f"DATABASE_URL uses an unsupported driver: {database_url.split(':', 1)[0]}",
                          always_error=True)
        return database_url

    def validate_rate_limiting_config(self) -> str:
        storage_uri = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
        if storage_uri == 'memory://' and self.is_production:
            self._finding(
                "RATELIMIT_STORAGE_URI is memory://, so spin limits are per process. "
                "Point it at Redis (e.g., redis://localhost:6379/0)"
            )
        return storage_uri

    def validate_cors_config(self) -> List[str]:
        origins = [o.strip() for o in os.getenv('CORS_ORIGINS', '').split(',') if o.strip()]
        if not origins and self.is_production:
            self._finding("CORS_ORIGINS must name the host site that embeds the roulette table")
        for origin in origins:
            if not origin.startswith(('http://', 'https://')):
                self.warnings.append(f"WARNING: CORS origin '{origin}' should include protocol (http:// or https://)")
        return origins

    def validate_game_config(self) -> dict:
        """Roulette table settings."""
        starting_credits = self._read('ROULETTE_STARTING_CREDITS', '1000.00', Decimal, 'a decimal number')
        if starting_credits < 0:
            self._finding("ROULETTE_STARTING_CREDITS cannot be negative", always_error=True)

        per_page = self._read('ROULETTE_HISTORY_PER_PAGE', '16', int, 'an integer')
        if per_page < 1:
            self._finding("ROULETTE_HISTORY_PER_PAGE must be at least 1", always_error=True)

        return {
            'ROULETTE_ENABLED': _env_flag('ROULETTE_ENABLED', 'True'),
            'ROULETTE_STRICT_BET_MULTIPLIER': _env_flag('ROULETTE_STRICT_BET_MULTIPLIER', 'False'),
            'ROULETTE_SPIN_RATE_LIMIT': os.getenv('ROULETTE_SPIN_RATE_LIMIT', '60 per minute'),
            'ROULETTE_STARTING_CREDITS': starting_credits,
            'ROULETTE_HISTORY_PER_PAGE': per_page,
        }

    def validate_all(self) -> dict:
        """
        Runs every check and returns the settings `Config` is built from.

        Raises:
            ConfigValidationError: listing every fatal finding at once
        """
        jwt_secret, access_expires = self.validate_jwt_config()
        config = {
            'JWT_SECRET_KEY': jwt_secret,
            'JWT_ACCESS_TOKEN_EXPIRES': access_expires,
            'SQLALCHEMY_DATABASE_URI': self.validate_database_config(),
            'RATELIMIT_STORAGE_URI': self.validate_rate_limiting_config(),
            'CORS_ORIGINS': self.validate_cors_config(),
            'DEBUG': _env_flag('FLASK_DEBUG', 'False'),
        }
        config.update(self.validate_game_config())

        if self.is_production and config['DEBUG']:
            self._finding("FLASK_DEBUG must be off in production")

        if self.errors:
            lines = ["Configuration validation failed:"] + [f"  - {e}" for e in self.errors]
            if self.warnings:
                lines += ["", "Warnings:"] + [f"  - {w}" for w in self.warnings]
            raise ConfigValidationError("\n".join(lines))

        for message in self.warnings:
            warnings.warn(message, UserWarning)
        return config


def validate_production_config() -> dict:
    """Builds the validated settings, or exits the process when they are unusable."""
    try:
        return ConfigValidator().validate_all()
    except ConfigValidationError as e:
        print("\nCONFIGURATION VALIDATION FAILED\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nRoulette service startup aborted\n", file=sys.stderr)
        sys.exit(1)
