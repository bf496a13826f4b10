"""
Becky chat API route.

Endpoints:
- POST /chat/becky - Send a message to the assistant
"""
import logging
from datetime import date

from flask import request, jsonify, g, current_app

from extensions import db
from models import UserContext
from api_decorators import jwt_required
from services.chat_service import BeckyService, BeckyUnavailableError, ToolBridge
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


def _get_or_create_context(user):
    context = user.context
    if context is None:
        context = UserContext(user_id=user.id)
        context.set_data(UserContext.initial_data())
        db.session.add(context)
    return context


@api_bp.route('/chat/becky', methods=['POST'])
@jwt_required
def api_chat_becky():
    """Chat with Becky.

    Request body:
        {"message": "¿Cuánto gasté en comida en marzo?"}

    Returns:
        {"response": "..."}
    """
    data = request.get_json(silent=True) or {}
    message = data.get('message')

    if not message or not isinstance(message, str) or not message.strip():
        return jsonify({'error': 'Message is required'}), 400

    becky = BeckyService.from_config()
    if not becky.available:
        return jsonify({'error': 'Becky is not available right now'}), 503

    user = g.current_user
    context = _get_or_create_context(user)
    bridge = ToolBridge(
        current_app.config['API_BASE_URL'],
        g.access_token,
        timeout=current_app.config['TOOL_REQUEST_TIMEOUT']
    )

    try:
        messages = becky.build_messages(user.name, context.get_data(), message.strip(), date.today())
        answer = becky.run(messages, bridge)
    except BeckyUnavailableError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 503

    try:
        context.record_exchange(message.strip(), answer)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception(f"Failed to store chat history for user {user.id}")

    return jsonify({'response': answer})
