"""
Movement API routes.

Endpoints:
- GET /movements/account/<account_id> - List movements of an account
- POST /movements/account/<account_id> - Create movement
- GET /movements/<id> - Get single movement
- PUT /movements/<id> - Update movement
- DELETE /movements/<id> - Delete movement
- GET /movements/monthly - Monthly expense total
- GET /movements/monthly/categories - Monthly spending by category
- GET /movements/trends - Income/expense per month
"""
import logging

from flask import request, jsonify, g

from extensions import db
from api_decorators import jwt_required
from services.movement_service import MovementService
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


@api_bp.route('/movements/account/<int:account_id>', methods=['GET'])
@jwt_required
def api_list_movements(account_id):
    """List the movements of an account, newest first."""
    try:
        movements = MovementService.list_account_movements(g.current_user_id, account_id)
        return jsonify([m.to_dict() for m in movements])

    except MovementService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404


@api_bp.route('/movements/account/<int:account_id>', methods=['POST'])
@jwt_required
def api_create_movement(account_id):
    """Create an income or expense movement.

    Request body:
        {
            "type": "expense",
            "concept": "needs",
            "amount": 85.50,
            "description": "Groceries",
            "date": "2024-01-15",
            "category": "food"  # optional
        }
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    try:
        movement = MovementService.create_movement(g.current_user_id, account_id, data)
        return jsonify(movement.to_dict()), 201

    except MovementService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except MovementService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create movement")
        return jsonify({'error': 'Failed to create movement'}), 500


@api_bp.route('/movements/<int:movement_id>', methods=['GET'])
@jwt_required
def api_get_movement(movement_id):
    """Get a single movement."""
    movement = MovementService.get_user_movement(g.current_user_id, movement_id)

    if not movement:
        return jsonify({'error': 'Movement not found'}), 404

    return jsonify(movement.to_dict())


@api_bp.route('/movements/<int:movement_id>', methods=['PUT'])
@jwt_required
def api_update_movement(movement_id):
    """Update type, concept, amount, description, date or category."""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    try:
        movement = MovementService.update_movement(g.current_user_id, movement_id, data)
        return jsonify(movement.to_dict())

    except MovementService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except MovementService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception:
        db.session.rollback()
        logger.exception(f"Failed to update movement {movement_id}")
        return jsonify({'error': 'Failed to update movement'}), 500


@api_bp.route('/movements/<int:movement_id>', methods=['DELETE'])
@jwt_required
def api_delete_movement(movement_id):
    """Delete a movement."""
    try:
        MovementService.delete_movement(g.current_user_id, movement_id)
        return jsonify({'message': 'Movement deleted successfully'})

    except MovementService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except Exception:
        db.session.rollback()
        logger.exception(f"Failed to delete movement {movement_id}")
        return jsonify({'error': 'Failed to delete movement'}), 500


@api_bp.route('/movements/monthly', methods=['GET'])
@jwt_required
def api_monthly_expenses():
    """Total expenses for a month.

    Query Parameters:
        month (str): Month name ("January") or YYYY-MM
        concept (str): Optional concept filter
    """
    try:
        return jsonify(MovementService.get_monthly_expenses(
            g.current_user_id,
            request.args.get('month'),
            request.args.get('concept')
        ))

    except MovementService.ValidationError as e:
        return jsonify({'error': str(e)}), 400


@api_bp.route('/movements/monthly/categories', methods=['GET'])
@jwt_required
def api_monthly_categories():
    """Spending of a month grouped by category."""
    try:
        return jsonify(MovementService.get_monthly_spending_by_category(
            g.current_user_id,
            request.args.get('month')
        ))

    except MovementService.ValidationError as e:
        return jsonify({'error': str(e)}), 400


@api_bp.route('/movements/trends', methods=['GET'])
@jwt_required
def api_spending_trends():
    """Income and expenses for each of the last N months (default 6)."""
    months = request.args.get('months', 6, type=int)

    try:
        return jsonify(MovementService.get_spending_trends(g.current_user_id, months))

    except MovementService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
