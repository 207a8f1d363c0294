"""VPN detection endpoints for IPGUARD."""

import logging

from flask import jsonify

from . import api_bp
from .context import get_vpn_engine, invalid_ip_response
from ipguard.core.network.cidr import normalize_ip

logger = logging.getLogger(__name__)


@api_bp.route('/vpn/<ip>', methods=['GET'])
def check_vpn(ip):
    """Check an IP and explain the verdict.

    Returns:
        200: {"ip", "is_vpn", "info", "action", "detection_enabled"}
        400: Invalid IP address
    """
    logger.debug(f"GET /api/vpn/{ip} called")

    invalid = invalid_ip_response(ip)
    if invalid is not None:
        return invalid

    engine = get_vpn_engine()
    return jsonify({
        "success": True,
        "result": {
            "ip": normalize_ip(ip),
            "is_vpn": engine.is_vpn_or_proxy(ip),
            "info": engine.get_vpn_detection_info(ip),
            "action": engine.get_vpn_action().value,
            "detection_enabled": engine.is_detection_enabled(),
        },
    }), 200


@api_bp.route('/vpn/cache/clear', methods=['POST'])
def clear_vpn_cache():
    """Drop every cached VPN verdict."""
    logger.debug("POST /api/vpn/cache/clear called")

    cleared = get_vpn_engine().clear_cache()
    return jsonify({
        "success": True,
        "result": {"cleared": cleared},
    }), 200
