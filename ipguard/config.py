"""Flask configuration classes for IPGUARD.

Restriction limits and VPN detection settings live in the YAML file named
by ``IPGUARD_CONFIG_PATH``; these classes only hold process-level options.
"""

import os


class Config:
    """Options shared by every environment."""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'

    # Relative paths are resolved against the project root
    IPGUARD_CONFIG_PATH = os.environ.get('IPGUARD_CONFIG_PATH') or 'data/config/ipguard.yaml'

    # None: DEBUG when DEBUG is set, INFO otherwise
    IPGUARD_LOG_LEVEL = os.environ.get('IPGUARD_LOG_LEVEL')

    # Cache sweep thread and config file watcher
    IPGUARD_START_BACKGROUND_SERVICES = True
    IPGUARD_RELOAD_DEBOUNCE_SECONDS = 1.0


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """No background threads; tests start them explicitly."""

    DEBUG = False
    TESTING = True
    IPGUARD_START_BACKGROUND_SERVICES = False


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}
