"""
Receipt API routes.

Endpoints:
- POST /receipts/process-receipt - Upload and validate a receipt image
- POST /receipts/extract-receipt-data - Extract receipt fields with AI
- POST /receipts/create-expense-from-receipt - Create expense from extracted data
"""
import logging

from flask import request, jsonify, g, current_app

from extensions import db
from models import Movement
from api_decorators import jwt_required
from services.movement_service import MovementService
from services.receipt_service import (
    ReceiptError,
    ExtractionError,
    read_receipt_image,
    encode_image,
    get_extraction_service,
)
from blueprints.api import api_bp

logger = logging.getLogger(__name__)


@api_bp.route('/receipts/process-receipt', methods=['POST'])
@jwt_required
def api_process_receipt():
    """Accept a receipt image upload (multipart field "image").

    Returns:
        {
            "message": "Image received successfully",
            "imageInfo": {"originalName": ..., "size": ..., "mimeType": ..., "base64Preview": ...},
            "processingStatus": "ready_for_ai_processing"
        }
    """
    try:
        image = read_receipt_image(
            request.files.get('image'),
            current_app.config['MAX_RECEIPT_SIZE']
        )
    except ReceiptError as e:
        return jsonify({'error': str(e)}), 400

    encoded = encode_image(image['data'])

    return jsonify({
        'message': 'Image received successfully',
        'imageInfo': {
            'originalName': image['originalName'],
            'size': image['size'],
            'mimeType': image['mimeType'],
            'width': image['width'],
            'height': image['height'],
            'base64Preview': encoded[:100] + '...',
        },
        'processingStatus': 'ready_for_ai_processing'
    })


@api_bp.route('/receipts/extract-receipt-data', methods=['POST'])
@jwt_required
def api_extract_receipt_data():
    """Extract amount, merchant, date and items from a receipt image.

    Request body:
        {"imageBase64": "...", "mimeType": "image/jpeg"}
    """
    data = request.get_json(silent=True) or {}
    image_base64 = data.get('imageBase64')

    if not image_base64 or not isinstance(image_base64, str):
        return jsonify({'error': 'Image data required'}), 400

    try:
        extracted = get_extraction_service().extract(image_base64, data.get('mimeType') or 'image/jpeg')
    except ExtractionError as e:
        return jsonify({'error': str(e)}), 503

    return jsonify({
        'success': True,
        'extractedData': extracted,
        'message': 'Receipt data extraction completed'
    })


@api_bp.route('/receipts/create-expense-from-receipt', methods=['POST'])
@jwt_required
def api_create_expense_from_receipt():
    """Create an expense from reviewed receipt data.

    Request body:
        {
            "accountId": 1,
            "amount": 125.50,
            "merchant": "Supermercado Central",
            "date": "2024-01-15",
            "category": "food",  # optional, defaults to "receipt"
            "concept": "needs",  # optional, defaults to "others"
            "extractedData": {...}  # optional, echoed back
        }
    """
    data = request.get_json(silent=True) or {}

    missing = [f for f in ('accountId', 'amount', 'merchant', 'date') if not data.get(f)]
    if missing:
        return jsonify({'error': 'accountId, amount, merchant, and date are required'}), 400

    movement_data = {
        'type': Movement.TYPE_EXPENSE,
        'concept': data.get('concept') or Movement.CONCEPT_OTHERS,
        'amount': data['amount'],
        'description': f"{data['merchant']} - Creado desde imagen",
        'date': data['date'],
        'category': data.get('category') or 'receipt',
    }

    try:
        movement = MovementService.create_movement(g.current_user_id, data['accountId'], movement_data)
    except MovementService.NotFoundError as e:
        return jsonify({'error': str(e)}), 404
    except MovementService.ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create expense from receipt")
        return jsonify({'error': 'Internal server error'}), 500

    return jsonify({
        'success': True,
        'movement': movement.to_dict(),
        'message': 'Expense created successfully from receipt',
        'extractedData': data.get('extractedData')
    }), 201
