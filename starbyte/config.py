"""
Configuration management for the Starbyte rewards service.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

from .utils.exceptions import ConfigurationError

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent

DELIVERY_FAILURE_POLICIES = ('debit_final', 'refund')
RECEIPT_POLICIES = ('always', 'on_resolved')
PURCHASE_AUTHORITIES = ('database', 'supabase')
EMAIL_TRANSPORTS = ('smtp', 'sendgrid')


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Signs the bearer tokens that carry the current star's session
    SESSION_SECRET = os.getenv('SESSION_SECRET', 'dev-session-secret-change-in-production')

    BASE_URL = (
        os.getenv('BASE_URL')
        or os.getenv('NEXTAUTH_URL')
        or os.getenv('NEXT_PUBLIC_BASE_URL')
        or 'http://localhost:3000'
    ).rstrip('/')
    BRAND_COLOR = os.getenv('BRAND_COLOR', '#4f7cff')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]

    # Purchase Authority backend: local database or Supabase stored procedures
    PURCHASE_AUTHORITY = os.getenv('PURCHASE_AUTHORITY', 'database')
    SUPABASE_URL = os.getenv('SUPABASE_URL', os.getenv('NEXT_PUBLIC_SUPABASE_URL', ''))
    SUPABASE_SERVICE_ROLE_KEY = os.getenv('SUPABASE_SERVICE_ROLE_KEY', '')
    SUPABASE_TIMEOUT = float(os.getenv('SUPABASE_TIMEOUT', '10'))

    # Delivery resolution
    DELIVERY_FETCH_TIMEOUT = float(os.getenv('DELIVERY_FETCH_TIMEOUT', '10'))
    DELIVERY_FAILURE_POLICY = os.getenv('DELIVERY_FAILURE_POLICY', 'debit_final')
    RECEIPT_POLICY = os.getenv('RECEIPT_POLICY', 'always')

    # Receipt email
    EMAIL_TRANSPORT = os.getenv('EMAIL_TRANSPORT', 'smtp')
    SMTP_HOST = os.getenv('SMTP_HOST', 'smtp.gmail.com')
    SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
    SMTP_USERNAME = os.getenv('SMTP_USERNAME', '')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
    SMTP_USE_TLS = _env_bool('SMTP_USE_TLS', True)
    SMTP_TIMEOUT = float(os.getenv('SMTP_TIMEOUT', '30'))
    SENDGRID_API_KEY = os.getenv('SENDGRID_API_KEY', '')
    MAIL_FROM_NAME = os.getenv('MAIL_FROM_NAME', 'Starbyte')
    MAIL_FROM_ADDRESS = os.getenv('MAIL_FROM_ADDRESS', SMTP_USERNAME or 'noreply@starbyte.app')

    RECEIPT_LOGO_PATH = os.getenv(
        'RECEIPT_LOGO_PATH',
        str(PACKAGE_DIR / 'static' / 'icons' / 'icon512_maskable.png')
    )
    RECEIPT_LOGO_URL = os.getenv('RECEIPT_LOGO_URL', f'{BASE_URL}/icons/icon512_maskable.png')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///starbyte_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,
    }

    _secret_key = os.getenv('SECRET_KEY', '')
    _session_secret = os.getenv('SESSION_SECRET', '')

    SECRET_KEY = _secret_key
    SESSION_SECRET = _session_secret

    @classmethod
    def validate_secrets(cls) -> None:
        """
        Validate SECRET_KEY and SESSION_SECRET in production.

        Raises:
            ConfigurationError: If a secret is missing, short, or looks like a placeholder
        """
        for name, value in (('SECRET_KEY', cls._secret_key), ('SESSION_SECRET', cls._session_secret)):
            if not value:
                raise ConfigurationError(f"{name} environment variable is not set")

            lower_value = value.lower()
            for pattern in ('dev', 'change', 'default', 'test', 'secret', 'password'):
                if pattern in lower_value:
                    raise ConfigurationError(f"{name} contains '{pattern}' and is not secure")

            if len(value) < 32:
                raise ConfigurationError(f"{name} is too short (minimum 32 characters)")


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SESSION_SECRET = 'testing-session-secret-0123456789abcdef'
    BASE_URL = 'http://localhost:3000'
    RECEIPT_LOGO_URL = 'http://localhost:3000/icons/icon512_maskable.png'
    MAIL_FROM_ADDRESS = 'receipts@starbyte.test'
    PURCHASE_AUTHORITY = 'database'
    EMAIL_TRANSPORT = 'smtp'
    DELIVERY_FAILURE_POLICY = 'debit_final'
    RECEIPT_POLICY = 'always'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config, config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Args:
        config: Mapping of loaded configuration values (app.config)
        config_name: The configuration environment name

    Raises:
        ConfigurationError: If a policy name is unknown or production secrets are weak
    """
    choices = {
        'PURCHASE_AUTHORITY': PURCHASE_AUTHORITIES,
        'DELIVERY_FAILURE_POLICY': DELIVERY_FAILURE_POLICIES,
        'RECEIPT_POLICY': RECEIPT_POLICIES,
        'EMAIL_TRANSPORT': EMAIL_TRANSPORTS,
    }
    for key, allowed in choices.items():
        if config.get(key) not in allowed:
            raise ConfigurationError(
                f"{key} must be one of {', '.join(allowed)} (got {config.get(key)!r})"
            )

    if config.get('PURCHASE_AUTHORITY') == 'supabase' and not config.get('SUPABASE_URL'):
        raise ConfigurationError("SUPABASE_URL is required when PURCHASE_AUTHORITY is 'supabase'")

    if config_name == 'production':
        ProductionConfig.validate_secrets()
