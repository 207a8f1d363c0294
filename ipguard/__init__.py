"""IPGUARD Application Factory.

This module provides the application factory pattern for creating Flask
application instances wired to the IP restriction and VPN detection
engines.
"""

import threading
from pathlib import Path

from flask import Flask

from ipguard.config import config


def create_app(config_name='default', store=None, sessions=None, resolver=None, settings=None):
    """Create and configure the Flask application.

    Args:
        config_name: Configuration name ('development', 'testing', 'production', 'default')
        store: Account store collaborator (in-memory store if None)
        sessions: Session directory collaborator (in-memory directory if None)
        resolver: Reverse-DNS resolver (system resolver if None)
        settings: RestrictionSettings to use instead of the YAML file

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Configure logging
    _configure_logging(app)

    # Build settings, engines and janitor
    _configure_engines(app, store, sessions, resolver, settings)

    # Start cache sweep and config hot-reload
    _start_background_services(app)

    # Register blueprints
    _register_blueprints(app)

    # Register error handlers
    _register_error_handlers(app)

    app.logger.info(f'Application created (config={config_name})')

    return app


def _configure_logging(app):
    """Configure application logging with IPGUARD structured format.

    Args:
        app: Flask application instance
    """
    from ipguard.logging_config import configure_logging
    configure_logging(app)


def _resolve_config_path(app):
    path = Path(app.config['IPGUARD_CONFIG_PATH'])
    if not path.is_absolute():
        path = Path(app.root_path).parent / path
    return path


def _configure_engines(app, store, sessions, resolver, settings):
    """Create the settings provider and both engines.

    Engine instances are stored in app.extensions; nothing is kept in
    module globals.

    Args:
        app: Flask application instance
        store: Account store or None
        sessions: Session directory or None
        resolver: Hostname resolver or None
        settings: RestrictionSettings or None
    """
    from ipguard.core.cache import CacheJanitor
    from ipguard.core.detection import VpnDetectionEngine
    from ipguard.core.restriction import RestrictionPolicyEngine
    from ipguard.core.store import InMemoryAccountStore, InMemorySessionDirectory
    from ipguard.services import SettingsProvider

    config_path = _resolve_config_path(app)
    try:
        provider = SettingsProvider(settings=settings, path=config_path)
    except Exception as e:
        app.logger.error(f'Failed to load restriction settings, using defaults (error={str(e)})')
        from ipguard.services import RestrictionSettings
        provider = SettingsProvider(settings=RestrictionSettings(), path=config_path)

    if store is None:
        app.logger.warning('No account store configured, using in-memory store')
        store = InMemoryAccountStore()
    if sessions is None:
        sessions = InMemorySessionDirectory()

    vpn_engine = VpnDetectionEngine(provider, resolver=resolver)
    restriction_engine = RestrictionPolicyEngine(provider, store, sessions, vpn_engine)
    janitor = CacheJanitor(restriction_engine.count_cache, vpn_engine.cache)

    # Reloaded ranges and limits must not be masked by cached verdicts
    provider.add_listener(lambda _settings: restriction_engine.clear_all_caches())

    app.extensions['ipguard_settings'] = provider
    app.extensions['vpn_detection'] = vpn_engine
    app.extensions['restriction_engine'] = restriction_engine
    app.extensions['cache_janitor'] = janitor

    current = provider.current
    app.logger.info(
        f'Restriction engine configured (max_reg={current.max_registrations_per_ip}, '
        f'max_login={current.max_login_per_ip}, max_join={current.max_join_per_ip}, '
        f'vpn_detection={current.vpn_detection_enabled}, action={current.vpn_action.value})'
    )


def _start_background_services(app):
    """Start the cache sweep scheduler and the config watcher if enabled.

    Args:
        app: Flask application instance
    """
    if not app.config.get('IPGUARD_START_BACKGROUND_SERVICES', False):
        app.logger.debug('Background services disabled')
        return

    provider = app.extensions['ipguard_settings']
    current = provider.current

    _restart_sweep_scheduler(app, current)
    provider.add_listener(lambda settings: _restart_sweep_scheduler(app, settings))

    if current.reload_on_change:
        from ipguard.services.settings_watcher import SettingsFileWatcher

        watcher = SettingsFileWatcher(
            provider,
            debounce_seconds=app.config.get('IPGUARD_RELOAD_DEBOUNCE_SECONDS', 1.0),
        )
        if watcher.start():
            app.extensions['settings_watcher'] = watcher
            app.logger.info('Settings hot-reload watcher started')
        else:
            app.logger.warning('Failed to start settings hot-reload watcher')


_sweep_lock = threading.Lock()


def _restart_sweep_scheduler(app, settings):
    """Stop the running sweep scheduler and start one matching settings.

    Args:
        app: Flask application instance
        settings: RestrictionSettings now in effect
    """
    from ipguard.services import SweepScheduler

    with _sweep_lock:
        previous = app.extensions.pop('sweep_scheduler', None)
        if previous is not None:
            previous.stop()

        if not settings.cache_cleanup_enabled:
            if previous is not None:
                app.logger.info('Cache sweep disabled by settings')
            return

        scheduler = SweepScheduler(
            app.extensions['cache_janitor'],
            interval_seconds=settings.cache_cleanup_interval_seconds,
        )
        scheduler.start()
        app.extensions['sweep_scheduler'] = scheduler


def _register_blueprints(app):
    """Register all application blueprints.

    Args:
        app: Flask application instance
    """
    from ipguard.blueprints.api import api_bp

    app.register_blueprint(api_bp, url_prefix='/api')


def _register_error_handlers(app):
    """Answer routing and server errors with the API error payload.

    Args:
        app: Flask application instance
    """
    from ipguard.blueprints.api.context import error_response
    from ipguard.models.errors import (
        SYSTEM_INTERNAL_ERROR,
        SYSTEM_METHOD_NOT_ALLOWED,
        SYSTEM_NOT_FOUND,
    )

    @app.errorhandler(404)
    def not_found_error(error):
        return error_response(SYSTEM_NOT_FOUND, 'The requested resource was not found', 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return error_response(
            SYSTEM_METHOD_NOT_ALLOWED,
            'Method not allowed for this resource',
            405,
            {'allowed': sorted(getattr(error, 'valid_methods', None) or [])},
        )

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f'Unhandled error (error={error})')
        return error_response(SYSTEM_INTERNAL_ERROR, 'An internal server error occurred', 500)
