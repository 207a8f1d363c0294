"""IPGUARD log formatting.

Every record is rendered as::

    [YYYY-MM-DD HH:MM:SS][LEVEL][short.name] Message (key=value)

where ``short.name`` is the logger name with the package plumbing removed:

    ipguard.core.restriction.policy_engine -> restriction.policy
    ipguard.blueprints.api.restrictions    -> api.restrictions
    ipguard.services.sweep_scheduler       -> services.sweep
"""

import logging

LOG_FORMAT = '[%(asctime)s][%(levelname)s][%(shortname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers kept at WARNING
NOISY_LOGGERS = ('werkzeug', 'watchdog')


class IpGuardFormatter(logging.Formatter):
    """Formatter exposing ``%(shortname)s`` for IPGUARD logger names."""

    # Applied in order; suffixes are stripped before the 'core.' prefix
    LEADING_PREFIXES = ('ipguard.', 'blueprints.')
    SUFFIXES_TO_STRIP = ('_engine', '_manager', '_scheduler', '_service')
    TRAILING_PREFIX = 'core.'

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: str = DATE_FORMAT):
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        record.shortname = self._get_short_name(record.name)
        return super().format(record)

    def _get_short_name(self, name: str) -> str:
        """Shorten a logger name.

        Args:
            name: Logger name, usually a module path (e.g. 'ipguard.core.cache.janitor')

        Returns:
            Short name (e.g. 'cache.janitor'); foreign names are returned as is
        """
        for prefix in self.LEADING_PREFIXES:
            if name.startswith(prefix):
                name = name[len(prefix):]

        for suffix in self.SUFFIXES_TO_STRIP:
            if name.endswith(suffix):
                name = name[:-len(suffix)]
                break

        if name.startswith(self.TRAILING_PREFIX):
            name = name[len(self.TRAILING_PREFIX):]

        return name


def _resolve_level(app) -> int:
    configured = app.config.get('IPGUARD_LOG_LEVEL')
    if configured:
        level = logging.getLevelName(str(configured).upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if app.config.get('DEBUG') else logging.INFO


def configure_logging(app) -> None:
    """Install a single console handler using IpGuardFormatter on the root logger.

    The level comes from ``IPGUARD_LOG_LEVEL`` when set, otherwise DEBUG in
    debug mode and INFO elsewhere. Calling it again replaces the handler.

    Args:
        app: Flask application instance.
    """
    log_level = _resolve_level(app)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(IpGuardFormatter())
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
