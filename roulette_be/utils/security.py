"""
Security utilities: request rate limiting and response hardening headers
"""
from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialised against the app in create_app; limits are read from app.config
limiter = Limiter(key_func=get_remote_address)


def spin_rate_limit():
    """Per-IP limit for the settlement endpoint, e.g. '60 per minute'."""
    return current_app.config.get('ROULETTE_SPIN_RATE_LIMIT', '60 per minute')


def secure_headers(response):
    """Add security headers to API responses"""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    # Balances and history must never be served from a shared cache
    response.headers['Cache-Control'] = 'no-store'
    return response
