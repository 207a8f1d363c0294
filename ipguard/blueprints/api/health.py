"""Health endpoint for IPGUARD."""

import logging

from flask import current_app, jsonify

from . import api_bp
from .context import get_restriction_engine

logger = logging.getLogger(__name__)


@api_bp.route('/health', methods=['GET'])
def health():
    """Service status, cache sizes and active settings."""
    logger.debug("GET /api/health called")

    engine = get_restriction_engine()
    scheduler = current_app.extensions.get('sweep_scheduler')
    settings = current_app.extensions['ipguard_settings'].current

    return jsonify({
        "success": True,
        "result": {
            "status": "ok",
            "caches": {
                engine.count_cache.name: len(engine.count_cache),
                engine.vpn_detection.cache.name: len(engine.vpn_detection.cache),
            },
            "sweep_scheduler_running": bool(scheduler and scheduler.is_running),
            "settings": settings.to_dict(),
        },
    }), 200
