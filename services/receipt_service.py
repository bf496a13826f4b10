"""
Receipt service - image validation and AI-assisted data extraction.
"""
import base64
import io
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from datetime import datetime

from flask import current_app
from openai import OpenAI
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


# =============================================================================
# Image Validation
# =============================================================================

ALLOWED_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}

MAGIC_BYTES = {
    'jpg': [b'\xff\xd8\xff'],
    'jpeg': [b'\xff\xd8\xff'],
    'png': [b'\x89PNG\r\n\x1a\n'],
    'gif': [b'GIF87a', b'GIF89a'],
    'webp': [b'RIFF'],
}

MIME_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
}

CONFIDENCE_THRESHOLD = 0.8


class ReceiptError(Exception):
    """Raised when an uploaded receipt image is rejected."""
    pass


class ExtractionError(Exception):
    """Raised when receipt extraction fails."""
    pass


def get_extension(filename):
    """Return the lower-cased extension of a filename ('' if none)."""
    return filename.rsplit('.', 1)[1].lower() if filename and '.' in filename else ''


def allowed_file(filename):
    """Check if file extension is an accepted image type."""
    return get_extension(filename) in ALLOWED_EXTENSIONS


def validate_image_content(data, ext):
    """Check the image bytes match the extension's signature.

    WebP files are RIFF containers with 'WEBP' at offset 8.
    """
    header = data[:12]
    if not header:
        return False

    if ext == 'webp':
        return header.startswith(b'RIFF') and header[8:12] == b'WEBP'

    return any(header.startswith(sig) for sig in MAGIC_BYTES.get(ext, []))


def read_receipt_image(file_storage, max_size):
    """Validate an uploaded receipt and return its bytes and metadata.

    Args:
        file_storage: Werkzeug FileStorage from request.files
        max_size: Maximum accepted size in bytes

    Returns:
        Dict with data, originalName, size, mimeType, width, height

    Raises:
        ReceiptError: If the file is missing, too large or not an image
    """
    if file_storage is None or not file_storage.filename:
        raise ReceiptError('No image file provided')

    filename = file_storage.filename
    if not allowed_file(filename):
        raise ReceiptError('Only image files are allowed!')

    data = file_storage.read(max_size + 1)
    if len(data) > max_size:
        raise ReceiptError(f'Image must be smaller than {max_size // (1024 * 1024)}MB')

    ext = get_extension(filename)
    if not validate_image_content(data, ext):
        raise ReceiptError('File content does not match its extension')

    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError):
        raise ReceiptError('Could not read image')

    return {
        'data': data,
        'originalName': filename,
        'size': len(data),
        'mimeType': MIME_TYPES[ext],
        'width': width,
        'height': height,
    }


def needs_review(extracted):
    """Low-confidence or incomplete extractions must be reviewed by the user."""
    confidence = extracted.get('confidence') or 0
    return confidence < CONFIDENCE_THRESHOLD or not extracted.get('amount') or not extracted.get('merchant')


# =============================================================================
# Extraction Service Interface
# =============================================================================

class ExtractionService(ABC):
    """Abstract base class for receipt extraction services."""

    @abstractmethod
    def extract(self, image_base64, mime_type):
        """Extract receipt data from an image.

        Args:
            image_base64: Base64-encoded image (no data URI prefix)
            mime_type: Image MIME type

        Returns:
            Dict with keys: amount, merchant, date, items, category,
            rawText, confidence, needsReview
        """
        pass


class MockExtractionService(ExtractionService):
    """Mock extraction service for development and tests."""

    def extract(self, image_base64, mime_type):
        extracted = {
            'amount': 125.50,
            'merchant': 'Supermercado Central',
            'date': datetime.now().strftime('%Y-%m-%d'),
            'items': ['Pan', 'Leche', 'Huevos'],
            'category': 'food',
            'rawText': (
                'SUPERMERCADO CENTRAL\n'
                'Pan $45.00\nLeche $35.50\nHuevos $45.00\n'
                'TOTAL: $125.50'
            ),
            'confidence': 0.85,
        }
        extracted['needsReview'] = needs_review(extracted)
        return extracted


class GPT4VExtractionService(ExtractionService):
    """GPT-4o vision based receipt extraction."""

    EXTRACTION_PROMPT = """Analiza esta imagen de un recibo/factura y extrae la siguiente información en formato JSON:

{
  "amount": monto total como número (solo el número, sin símbolos),
  "merchant": "nombre del comercio/tienda",
  "date": "fecha en formato YYYY-MM-DD",
  "items": ["lista de productos si están visibles"],
  "category": "categoría sugerida (food, shopping, transport, entertainment, etc.)",
  "rawText": "todo el texto visible en la imagen",
  "confidence": nivel de confianza de 0 a 1
}

Si no puedes detectar algún campo, usa null. Responde SOLO con el JSON, sin texto adicional."""

    MAX_RETRIES = 3
    BASE_DELAY = 1.0

    def __init__(self, api_key=None, model=None):
        self.api_key = api_key or current_app.config.get('OPENAI_API_KEY')
        self.model = model or current_app.config.get('BECKY_MODEL', 'gpt-4o')
        self._client = None

    @property
    def client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None and self.api_key:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def extract(self, image_base64, mime_type):
        if not self.client:
            logger.error("OpenAI API key not configured for receipt extraction")
            raise ExtractionError('Receipt extraction is not configured')

        image_url = f"data:{mime_type};base64,{image_base64}"

        for attempt in range(self.MAX_RETRIES):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": self.EXTRACTION_PROMPT},
                                {"type": "image_url", "image_url": {"url": image_url}}
                            ]
                        }
                    ],
                    max_tokens=1000,
                    temperature=0.1
                )
                return self._parse_response(response.choices[0].message.content)

            except ExtractionError:
                raise
            except Exception as e:
                delay = self.BASE_DELAY * (2 ** attempt)
                # Log only exception type; the payload may contain sensitive details
                logger.warning(
                    f"Receipt extraction call failed (attempt {attempt + 1}/{self.MAX_RETRIES}): "
                    f"{type(e).__name__}"
                )
                if attempt < self.MAX_RETRIES - 1:
                    time.sleep(delay)
                else:
                    logger.error("All retry attempts exhausted")
                    raise ExtractionError('AI extraction temporarily unavailable') from e

    def _parse_response(self, content):
        """Parse the model's JSON answer into normalized receipt data."""
        content = content or ''
        json_match = re.search(r'```(?:json)?\s*([\s\S]*?)\s*```', content)
        if json_match:
            json_str = json_match.group(1)
        else:
            json_match = re.search(r'\{[\s\S]*\}', content)
            if not json_match:
                raise ExtractionError('No receipt data found in the image')
            json_str = json_match.group(0)

        try:
            raw = json.loads(json_str)
        except json.JSONDecodeError:
            raise ExtractionError('Could not parse receipt data')

        return self._normalize(raw)

    def _normalize(self, raw):
        amount = raw.get('amount')
        try:
            amount = abs(float(amount)) if amount is not None else None
        except (TypeError, ValueError):
            amount = None

        receipt_date = raw.get('date')
        if receipt_date:
            try:
                receipt_date = datetime.strptime(str(receipt_date), '%Y-%m-%d').strftime('%Y-%m-%d')
            except ValueError:
                receipt_date = None

        try:
            confidence = max(0.0, min(1.0, float(raw.get('confidence') or 0)))
        except (TypeError, ValueError):
            confidence = 0.0

        items = raw.get('items') or []
        if not isinstance(items, list):
            items = []

        extracted = {
            'amount': amount,
            'merchant': (raw.get('merchant') or '').strip() or None,
            'date': receipt_date,
            'items': [str(item) for item in items],
            'category': raw.get('category'),
            'rawText': raw.get('rawText'),
            'confidence': confidence,
        }
        extracted['needsReview'] = needs_review(extracted)
        return extracted


def get_extraction_service():
    """Get the configured extraction service."""
    service_type = current_app.config.get('RECEIPT_EXTRACTION_SERVICE', 'mock')

    if service_type == 'gpt4v':
        return GPT4VExtractionService()
    return MockExtractionService()


def encode_image(data):
    """Base64-encode image bytes."""
    return base64.b64encode(data).decode('utf-8')
