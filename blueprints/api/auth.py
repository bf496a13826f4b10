"""
Authentication API routes.

Endpoints:
- POST /auth/register - Register new user
- POST /auth/login - Login and get a token
"""
import logging
import re
from datetime import datetime

from flask import request, jsonify

from extensions import db, limiter
from models import User, UserContext
from api_decorators import generate_access_token
from blueprints.api import api_bp

logger = logging.getLogger(__name__)

# Email validation regex pattern
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

MIN_PASSWORD_LENGTH = 6


def is_valid_email(email):
    """Validate email format using regex."""
    return EMAIL_REGEX.match(email) is not None


def _auth_response(message, user):
    return {
        'message': message,
        'token': generate_access_token(user.id, user.email),
        'user': {'id': user.id, 'name': user.name, 'email': user.email},
    }


@api_bp.route('/auth/register', methods=['POST'])
@limiter.limit("10 per minute")
def api_register():
    """Register a new user account.

    Request body:
        {"name": "User Name", "email": "user@example.com", "password": "secret"}

    Returns:
        {"message": "...", "token": "...", "user": {...}}
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not name:
        return jsonify({'error': 'Name is required'}), 400
    if not is_valid_email(email):
        return jsonify({'error': 'Invalid email address'}), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'User with this email already exists'}), 400

    try:
        user = User(email=email, name=name, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()

        # Every user starts with default preferences and an empty chat history
        context = UserContext(user_id=user.id)
        context.set_data(UserContext.initial_data())
        db.session.add(context)

        db.session.commit()
        logger.info(f"User {user.id} registered")

        return jsonify(_auth_response('User created successfully', user)), 201

    except Exception:
        db.session.rollback()
        logger.exception("Registration failed")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/auth/login', methods=['POST'])
@limiter.limit("10 per minute")
def api_login():
    """Login and get an access token.

    Request body:
        {"email": "user@example.com", "password": "secret"}

    Returns:
        {"message": "...", "token": "...", "user": {...}}
    """
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'Request body required'}), 400

    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({'error': 'Email and password required'}), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({'error': 'Invalid email or password'}), 401

    if not user.is_active:
        return jsonify({'error': 'Account is inactive'}), 401

    user.last_login = datetime.utcnow()
    db.session.commit()

    return jsonify(_auth_response('Login successful', user))
