"""
Loan ledger API routes.

Endpoints:
- POST /loans/shared-expense - Split an expense between participants
- POST /loans/simple-loan - Record money lent or borrowed
- GET /loans/pending - Active loans with totals
- PATCH /loans/<movement_id>/settle - Record a (partial) payment
"""
import logging

from flask import request, jsonify, g

from extensions import db
from models import Movement
from api_decorators import jwt_required
from services.loan_service import LoanService
from utils import to_float
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


@api_bp.route('/loans/shared-expense', methods=['POST'])
@jwt_required
def api_create_shared_expense():
    """Create a shared expense.

    Request body:
        {
            "accountId": 1,
            "totalAmount": 100,
            "participants": 5,
            "description": "Fotocopias",
            "date": "2024-01-15",
            "category": "office",  # optional
            "concept": "others",  # optional
            "participantsList": ["Ana", "Luis"]  # optional
        }

    Returns:
        {"message": "...", "expense": {...}, "summary": {...}}
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    try:
        expense, summary = LoanService.create_shared_expense(g.current_user_id, data)

        return jsonify({
            'message': 'Shared expense created successfully',
            'expense': expense.to_dict(),
            'summary': summary
        })

    except LoanService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except LoanService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create shared expense")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/loans/simple-loan', methods=['POST'])
@jwt_required
def api_create_simple_loan():
    """Create a simple loan.

    Request body:
        {
            "accountId": 1,
            "amount": 50,
            "loanType": "lent",
            "description": "Cena",
            "date": "2024-01-15",
            "category": "loan",  # optional
            "relatedPerson": "Ana"  # optional
        }

    Returns:
        {"message": "...", "loan": {...}, "summary": {...}}
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    try:
        loan, summary = LoanService.create_simple_loan(g.current_user_id, data)

        if loan.loan_type == Movement.LOAN_LENT:
            message = 'Loan created successfully'
        else:
            message = 'Borrowed amount recorded successfully'

        return jsonify({
            'message': message,
            'loan': loan.to_dict(),
            'summary': summary
        })

    except LoanService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except LoanService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create simple loan")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/loans/pending', methods=['GET'])
@jwt_required
def api_pending_loans():
    """List active loans.

    Returns:
        {
            "loans": [...],
            "count": 2,
            "summary": {"totalLent": 80.0, "totalBorrowed": 0.0, "netBalance": 80.0}
        }
    """
    try:
        return jsonify(LoanService.get_pending_loans(g.current_user_id))

    except Exception:
        logger.exception("Failed to get pending loans")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/loans/<int:movement_id>/settle', methods=['PATCH'])
@jwt_required
def api_settle_loan(movement_id):
    """Record a payment against a loan.

    Request body (all fields optional):
        {"amountPaid": 25, "description": "Ana me pagó"}

    Returns:
        {"message": "...", "settlement": {...}, "remainingAmount": 55.0, "status": "active"}
    """
    data = request.get_json(silent=True) or {}

    try:
        settlement, remaining, status = LoanService.settle_loan(
            g.current_user_id,
            movement_id,
            amount_paid=data.get('amountPaid'),
            description=data.get('description')
        )

        return jsonify({
            'message': 'Loan settlement recorded successfully',
            'settlement': settlement.to_dict(),
            'remainingAmount': to_float(remaining),
            'status': status
        })

    except LoanService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except LoanService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except Exception:
        db.session.rollback()
        logger.exception(f"Failed to settle loan {movement_id}")
        return jsonify({'error': 'Internal server error'}), 500
