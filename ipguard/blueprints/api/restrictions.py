"""IP restriction administration endpoints for IPGUARD.

Standard response format: {"success": bool, "result": {...}, "error": {...}}
"""

import logging

from flask import jsonify

from . import api_bp
from .context import (
    error_response,
    get_cache_janitor,
    get_restriction_engine,
    invalid_ip_response,
)
from ipguard.core.network.cidr import normalize_ip
from ipguard.models.errors import STORE_UNAVAILABLE

logger = logging.getLogger(__name__)


@api_bp.route('/restrictions/<ip>', methods=['GET'])
def get_ip_report(ip):
    """Cached counts, live online count and VPN verdict for an IP.

    Returns:
        200: Report for the IP
        400: Invalid IP address
    """
    logger.debug(f"GET /api/restrictions/{ip} called")

    invalid = invalid_ip_response(ip)
    if invalid is not None:
        return invalid

    report = get_restriction_engine().get_ip_report(ip)
    return jsonify({
        "success": True,
        "result": report,
    }), 200


@api_bp.route('/restrictions/<ip>/accounts', methods=['GET'])
def list_accounts(ip):
    """List the accounts registered from an IP.

    Returns:
        200: Account names and count
        400: Invalid IP address
        503: Account store unavailable
    """
    logger.debug(f"GET /api/restrictions/{ip}/accounts called")

    invalid = invalid_ip_response(ip)
    if invalid is not None:
        return invalid

    try:
        accounts = get_restriction_engine().list_accounts_by_ip(ip)
    except Exception as e:
        logger.error(f"Error listing accounts (ip={ip}, error={str(e)})")
        return error_response(
            STORE_UNAVAILABLE,
            "Account store unavailable",
            503,
        )

    return jsonify({
        "success": True,
        "result": {
            "ip": normalize_ip(ip),
            "accounts": accounts,
            "count": len(accounts),
        },
    }), 200


@api_bp.route('/restrictions/<ip>/cache', methods=['DELETE'])
def invalidate_ip(ip):
    """Drop cached counts and VPN verdict for one IP.

    Returns:
        200: Cache invalidated
        400: Invalid IP address
    """
    logger.debug(f"DELETE /api/restrictions/{ip}/cache called")

    invalid = invalid_ip_response(ip)
    if invalid is not None:
        return invalid

    get_restriction_engine().invalidate_ip(ip)
    return jsonify({
        "success": True,
        "result": {"ip": normalize_ip(ip), "invalidated": True},
    }), 200


@api_bp.route('/restrictions/cache', methods=['DELETE'])
def clear_all_caches():
    """Drop every cached count and VPN verdict."""
    logger.debug("DELETE /api/restrictions/cache called")

    engine = get_restriction_engine()
    counts = len(engine.count_cache)
    verdicts = len(engine.vpn_detection.cache)
    engine.clear_all_caches()

    return jsonify({
        "success": True,
        "result": {"counts_cleared": counts, "verdicts_cleared": verdicts},
    }), 200


@api_bp.route('/cache/sweep', methods=['POST'])
def sweep_caches():
    """Run the cache janitor once."""
    logger.debug("POST /api/cache/sweep called")

    removed = get_cache_janitor().run()
    return jsonify({
        "success": True,
        "result": {"removed": removed},
    }), 200
