"""
Becky REST API blueprint.

All endpoints except /auth/* use JWT bearer authentication.
"""
from flask import Blueprint, request, jsonify

api_bp = Blueprint('api', __name__)


@api_bp.before_request
def require_json_object():
    """Reject JSON bodies that are not objects (lists, strings, numbers)."""
    if request.method not in ('POST', 'PUT', 'PATCH') or not request.is_json:
        return None

    data = request.get_json(silent=True)
    if data is not None and not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    return None


# Import routes to register them with the blueprint
from blueprints.api import auth  # noqa: F401, E402
from blueprints.api import users  # noqa: F401, E402
from blueprints.api import accounts  # noqa: F401, E402
from blueprints.api import movements  # noqa: F401, E402
from blueprints.api import contacts  # noqa: F401, E402
from blueprints.api import loans  # noqa: F401, E402
from blueprints.api import reports  # noqa: F401, E402
from blueprints.api import chat  # noqa: F401, E402
from blueprints.api import receipts  # noqa: F401, E402
