"""
Configuration classes for the Becky API.

Usage:
    from config import config
    app.config.from_object(config[config_name])
"""
import os
from datetime import timedelta


class Config:
    """Base configuration with defaults."""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # JWT (falls back to SECRET_KEY so a single secret is enough in development)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', os.environ.get('SECRET_KEY', 'dev-secret-key'))
    JWT_ALGORITHM = 'HS256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    # Database
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Rate limiting (Flask-Limiter config keys)
    RATELIMIT_DEFAULT = "500 per day; 100 per hour"
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')

    # Mail configuration (optional - for scheduled reports)
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'True').lower() == 'true'
    MAIL_USE_SSL = os.environ.get('MAIL_USE_SSL', 'False').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'becky@becky-finance.app')

    # Base URL the chat tool bridge calls back into
    API_BASE_URL = os.environ.get('API_BASE_URL', 'http://localhost:5001')
    TOOL_REQUEST_TIMEOUT = 30

    # LLM
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    BECKY_MODEL = os.environ.get('BECKY_MODEL', 'gpt-4o')

    # Receipts: 'mock' or 'gpt4v'
    RECEIPT_EXTRACTION_SERVICE = os.environ.get('RECEIPT_EXTRACTION_SERVICE', 'mock')
    MAX_RECEIPT_SIZE = 10 * 1024 * 1024  # 10MB

    # Scheduled reports
    REPORT_SCHEDULER_TIMEZONE = os.environ.get(
        'REPORT_SCHEDULER_TIMEZONE', 'America/Argentina/Buenos_Aires'
    )


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        'sqlite:///becky.db'
    )


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        'sqlite:////data/becky.db'
    )

    CSP_POLICY = "default-src 'none'; frame-ancestors 'none'"


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    JWT_SECRET_KEY = 'testing-jwt-secret'
    API_BASE_URL = 'http://becky.test'
    OPENAI_API_KEY = None
    RECEIPT_EXTRACTION_SERVICE = 'mock'

    # Never talk to a real SMTP server from tests
    MAIL_USERNAME = None

    # Disable rate limiting for tests
    RATELIMIT_ENABLED = False


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config_name():
    """Get configuration name from environment."""
    flask_env = os.environ.get('FLASK_ENV', 'development')
    if flask_env == 'production':
        return 'production'
    elif os.environ.get('TESTING'):
        return 'testing'
    return 'development'
