"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # JSON bodies from the Android clients are small; reject anything absurd
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024

    # Token signing (session/identity provider)
    JWT_SECRET = os.getenv('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_HOURS = int(os.getenv('JWT_EXPIRES_HOURS', '8'))

    # CORS - comma separated list of allowed origins
    CLIENT_ORIGIN = os.getenv('CLIENT_ORIGIN', 'http://localhost:5173')

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'distribuidora')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'distribuidora')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'distribuidora')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,  # Enable connection health checks
        'pool_size': int(os.getenv('DB_POOL_SIZE', '10')),
        'max_overflow': int(os.getenv('DB_MAX_OVERFLOW', '20')),
    }

    # Redis pub/sub for seller notifications (socket gateway subscribes)
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    NOTIFICATIONS_ENABLED = os.getenv('NOTIFICATIONS_ENABLED', 'true').lower() == 'true'
    NOTIFY_CHANNEL_PREFIX = os.getenv('NOTIFY_CHANNEL_PREFIX', 'distribuidora')

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestConfig(Config):
    """Configuration used by the pytest suite."""

    TESTING = True
    ENV = 'testing'
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET = 'test-jwt-secret-0123456789abcdef0123456789'

    # Integration tests against PostgreSQL set TEST_DATABASE_URL
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite://')
    if SQLALCHEMY_DATABASE_URI.startswith('sqlite'):
        SQLALCHEMY_ENGINE_OPTIONS = {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
        }

    NOTIFICATIONS_ENABLED = False
    SENTRY_DSN = None
