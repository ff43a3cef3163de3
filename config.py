"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'portal')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'portal')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'portal')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Orders
    ORDER_NUMBER_PREFIX = os.getenv('ORDER_NUMBER_PREFIX', 'CMD')
    ORDER_NUMBER_WIDTH = int(os.getenv('ORDER_NUMBER_WIDTH', '6'))
    # 'transaction' or 'compensate'
    ORDER_SUBMIT_STRATEGY = os.getenv('ORDER_SUBMIT_STRATEGY', 'transaction')
    # Display only: the order totals always use the fixed rate in order_service
    VAT_RATE_PERCENT = 20

    # Inventory defaults for newly provisioned client products
    DEFAULT_ALERT_THRESHOLD = int(os.getenv('DEFAULT_ALERT_THRESHOLD', '1000'))
    DEFAULT_CRITICAL_THRESHOLD = int(os.getenv('DEFAULT_CRITICAL_THRESHOLD', '500'))

    # The cart lives in the signed session cookie (browsers cap cookies near 4 KB)
    CART_MAX_LINES = int(os.getenv('CART_MAX_LINES', '25'))

    # Language for error messages and documents ('fr' or 'en')
    DEFAULT_LANGUAGE = os.getenv('DEFAULT_LANGUAGE', 'fr')

    # Business Information (for order documents)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'EONITE')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')

    # Redis Cache Configuration
    # Shared cache layer for catalog and dashboard reads
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))  # seconds
    CACHE_CATALOG_TTL = int(os.getenv('CACHE_CATALOG_TTL', '300'))
    CACHE_DASHBOARD_TTL = int(os.getenv('CACHE_DASHBOARD_TTL', '30'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'portal')


class TestConfig(Config):
    """Configuration used by the test suite (in-memory SQLite, no Redis)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    WTF_CSRF_ENABLED = False
    CACHE_ENABLED = False
    ORDER_SUBMIT_STRATEGY = 'transaction'
    DEFAULT_LANGUAGE = 'en'
