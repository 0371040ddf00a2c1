import os

# Config validates the environment at import time; run the suite as a development/testing deployment
os.environ.setdefault('FLASK_ENV', 'development')
os.environ.setdefault('TESTING', 'True')
os.environ.setdefault('JWT_SECRET_KEY', 'test-jwt-secret-key-that-is-long-enough-for-hs256')
os.environ.setdefault('DATABASE_URL', 'sqlite:///./test_roulette_be_isolated.db')
