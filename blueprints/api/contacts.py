"""
Contact API routes.

Endpoints:
- GET /contacts - List contacts
- POST /contacts - Create contact
"""
import logging

from flask import request, jsonify, g

from extensions import db
from models import Contact
from api_decorators import jwt_required
from blueprints.api import api_bp

logger = logging.getLogger(__name__)

OPTIONAL_FIELDS = ('phone', 'email', 'nickname', 'notes')


@api_bp.route('/contacts', methods=['GET'])
@jwt_required
def api_list_contacts():
    """List the user's contacts ordered by name."""
    contacts = Contact.query.filter_by(user_id=g.current_user_id).order_by(Contact.name).all()

    return jsonify({
        'contacts': [c.to_dict() for c in contacts],
        'count': len(contacts)
    })


@api_bp.route('/contacts', methods=['POST'])
@jwt_required
def api_create_contact():
    """Create a contact.

    Request body:
        {"name": "Ana", "phone": "...", "email": "...", "nickname": "...", "notes": "..."}
    """
    data = request.get_json(silent=True) or {}

    name = data.get('name')
    if not name or not isinstance(name, str) or not name.strip():
        return jsonify({'error': 'Name is required'}), 400

    for field in OPTIONAL_FIELDS:
        if data.get(field) is not None and not isinstance(data[field], str):
            return jsonify({'error': f'{field} must be a string'}), 400

    try:
        contact = Contact(
            user_id=g.current_user_id,
            name=name.strip(),
            **{field: data.get(field) for field in OPTIONAL_FIELDS}
        )
        db.session.add(contact)
        db.session.commit()

        return jsonify(contact.to_dict()), 201

    except Exception:
        db.session.rollback()
        logger.exception("Failed to create contact")
        return jsonify({'error': 'Failed to create contact'}), 500
