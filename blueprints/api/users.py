"""
User API routes.

Endpoints:
- GET /users/me - Current user profile
- GET /users/me/summary - Income/expense totals
- GET /users/me/savings - Savings progress against the savings goal
"""
import logging

from flask import jsonify, g

from models import DEFAULT_PREFERENCES
from api_decorators import jwt_required
from services.movement_service import MovementService
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


@api_bp.route('/users/me', methods=['GET'])
@jwt_required
def api_get_me():
    """Get the current user's profile."""
    return jsonify(g.current_user.to_dict())


@api_bp.route('/users/me/summary', methods=['GET'])
@jwt_required
def api_get_summary():
    """Get the financial summary over all non-loan movements.

    Returns:
        {"totalIncome": 0, "totalExpenses": 0, "balance": 0,
         "accountCount": 0, "movementCount": 0}
    """
    return jsonify(MovementService.get_financial_summary(g.current_user_id))


@api_bp.route('/users/me/savings', methods=['GET'])
@jwt_required
def api_get_savings():
    """Get savings progress using the goal stored in the user's context."""
    context = g.current_user.context
    preferences = context.preferences if context else {}
    goal = preferences.get('savingsGoal', DEFAULT_PREFERENCES['savingsGoal'])

    return jsonify(MovementService.get_savings_progress(g.current_user_id, goal))
