"""Application configuration."""
import os
import secrets

from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_hex(32)
    SQLALCHEMY_DATABASE_URI = os.environ.get('LEDGER_DB', 'sqlite:///bucketledger.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True
    }

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', os.path.abspath(
        os.path.join(os.path.dirname(__file__), '..', '..', 'logs')
    ))

    # Display only, the engine is currency agnostic
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'USD')

    # Scheduled rollover boundary (platform-local time)
    ROLLOVER_DAY = int(os.environ.get('ROLLOVER_DAY', '1'))
    ROLLOVER_HOUR = int(os.environ.get('ROLLOVER_HOUR', '0'))
    ROLLOVER_MINUTE = int(os.environ.get('ROLLOVER_MINUTE', '1'))


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    SQLALCHEMY_ECHO = os.environ.get('SQLALCHEMY_ECHO', 'false').lower() == 'true'


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False
    TESTING = False

    def __init__(self):
        """Validate production configuration."""
        super().__init__()
        if not os.environ.get('SECRET_KEY'):
            raise RuntimeError(
                "SECRET_KEY environment variable must be set in production. "
                "Generate one with: python -c 'import secrets; print(secrets.token_hex(32))'"
            )


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv('LEDGER_TEST_DB', 'sqlite://')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SQLALCHEMY_ECHO = False


config_by_name = {
    'production': ProductionConfig,
    'development': DevelopmentConfig,
    'testing': TestingConfig,
}


def get_config(config_name=None):
    """Resolve a config instance by name (defaults to APP_CONFIG, then production)."""
    if config_name is None:
        config_name = os.environ.get('APP_CONFIG', 'production')
    if config_name not in config_by_name:
        raise ValueError(f"Unknown config: {config_name}")
    return config_by_name[config_name]()
