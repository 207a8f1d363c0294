"""Access to the engines wired by the application factory.

Lookups go through ``current_app.extensions`` so each application
instance keeps its own caches.
"""

from flask import current_app, jsonify

from ipguard.core.network.cidr import is_valid_ip
from ipguard.models.errors import IP_INVALID_ADDRESS


def get_restriction_engine():
    """Return the RestrictionPolicyEngine of the current application."""
    return current_app.extensions['restriction_engine']


def get_vpn_engine():
    """Return the VpnDetectionEngine of the current application."""
    return current_app.extensions['vpn_detection']


def get_cache_janitor():
    """Return the CacheJanitor of the current application."""
    return current_app.extensions['cache_janitor']


def error_response(code, message, status, details=None):
    """Build the standard error payload."""
    return jsonify({
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
    }), status


def invalid_ip_response(ip):
    """400 response for a path segment that is not an IP literal, else None."""
    if is_valid_ip(ip):
        return None
    return error_response(
        IP_INVALID_ADDRESS,
        f"Invalid IP address: '{ip}'",
        400,
        {"ip": ip},
    )
