"""
JWT authentication helpers for the Becky API.
"""
from functools import wraps
from datetime import datetime

import jwt
from flask import request, jsonify, g, current_app

from extensions import db
from models import User


def generate_access_token(user_id, email=None):
    """Generate a signed access token.

    Args:
        user_id: The user's ID
        email: Optional email, embedded for client convenience

    Returns:
        JWT access token string
    """
    now = datetime.utcnow()
    payload = {
        'sub': str(user_id),
        'type': 'access',
        'email': email,
        'iat': now,
        'exp': now + current_app.config['JWT_ACCESS_TOKEN_EXPIRES']
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )


def decode_token(token):
    """Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Token is invalid
    """
    return jwt.decode(
        token,
        current_app.config['JWT_SECRET_KEY'],
        algorithms=[current_app.config['JWT_ALGORITHM']]
    )


def get_bearer_token():
    """Return the raw bearer token from the Authorization header, or None."""
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header[len('Bearer '):].strip() or None


def jwt_required(f):
    """Decorator requiring a valid JWT access token.

    Sets g.current_user_id, g.current_user and g.access_token.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()

        if not token:
            return jsonify({'error': 'Authorization header required'}), 401

        try:
            payload = decode_token(token)

            if payload.get('type') != 'access':
                return jsonify({'error': 'Invalid token type'}), 401

            user_id = int(payload['sub'])

        except jwt.ExpiredSignatureError:
            return jsonify({'error': 'Token expired'}), 401
        except (jwt.InvalidTokenError, KeyError, ValueError):
            return jsonify({'error': 'Invalid token'}), 401

        # Verify user exists and is active
        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            return jsonify({'error': 'User not found or inactive'}), 401

        g.current_user_id = user.id
        g.current_user = user
        g.access_token = token

        return f(*args, **kwargs)
    return decorated
