"""
Account API routes.

Endpoints:
- GET /accounts - List accounts with recent movements
- POST /accounts - Create account
- GET /accounts/<id> - Get single account
"""
import logging

from flask import request, jsonify, g

from extensions import db
from api_decorators import jwt_required
from services.account_service import AccountService
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


@api_bp.route('/accounts', methods=['GET'])
@jwt_required
def api_list_accounts():
    """List the user's accounts, each with its 10 most recent movements."""
    accounts = AccountService.list_accounts(g.current_user_id)

    return jsonify([
        account.to_dict(recent_movements=movements)
        for account, movements in accounts
    ])


@api_bp.route('/accounts', methods=['POST'])
@jwt_required
def api_create_account():
    """Create an account.

    Request body:
        {"name": "Main Checking", "bank": "Galicia", "type": "checking"}
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    try:
        account = AccountService.create_account(g.current_user_id, data)
        return jsonify(account.to_dict()), 201

    except AccountService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create account")
        return jsonify({'error': 'Failed to create account'}), 500


@api_bp.route('/accounts/<int:account_id>', methods=['GET'])
@jwt_required
def api_get_account(account_id):
    """Get a single account the user owns."""
    account = AccountService.get_user_account(g.current_user_id, account_id)

    if not account:
        return jsonify({'error': 'Account not found'}), 404

    return jsonify(account.to_dict())
