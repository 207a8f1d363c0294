# Cross-cutting services package

from .restriction_settings import (
    RestrictionSettings,
    SettingsProvider,
    load_settings_file,
    parse_vpn_action,
)
from .sweep_scheduler import SweepScheduler

__all__ = [
    # Restriction settings
    "RestrictionSettings",
    "SettingsProvider",
    "load_settings_file",
    "parse_vpn_action",
    # Cache sweep scheduling
    "SweepScheduler",
]
