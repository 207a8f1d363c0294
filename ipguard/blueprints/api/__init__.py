"""API Blueprint for IPGUARD REST endpoints."""

from flask import Blueprint

api_bp = Blueprint('api', __name__)

from ipguard.blueprints.api import health  # noqa: E402, F401
from ipguard.blueprints.api import restrictions  # noqa: E402, F401
from ipguard.blueprints.api import vpn  # noqa: E402, F401
