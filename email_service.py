"""
Email service for sending Becky reports.
"""
import logging

from flask import current_app
from flask_mail import Message

from extensions import mail

logger = logging.getLogger(__name__)


class EmailError(Exception):
    """Raised when an email cannot be delivered."""
    pass


def init_mail(app):
    """Initialize Flask-Mail with app configuration."""
    # Suppress email sending when SMTP is not configured
    app.config['MAIL_SUPPRESS_SEND'] = not app.config.get('MAIL_USERNAME')

    mail.init_app(app)
    return mail


def send_email(recipient, subject, html_body, text_body=None):
    """
    Send an email to a single recipient.

    Args:
        recipient: Email address
        subject: Subject line
        html_body: HTML content
        text_body: Optional plain text alternative

    Raises:
        EmailError: If the SMTP server rejects the message
    """
    msg = Message(
        subject=subject,
        recipients=[recipient],
        body=text_body or subject,
        html=html_body
    )

    # Check if mail sending is suppressed (development without SMTP config)
    if current_app.config.get('MAIL_SUPPRESS_SEND'):
        logger.info(f"[EMAIL SUPPRESSED] Would send '{subject}' to: {recipient}")
        return

    try:
        mail.send(msg)
    except Exception as e:
        logger.error(f"Failed to send '{subject}' to {recipient}: {type(e).__name__}")
        raise EmailError(f'Could not send email to {recipient}') from e

    logger.info(f"[EMAIL] '{subject}' sent to: {recipient}")


def is_mail_configured():
    """Check if email is properly configured."""
    return bool(current_app.config.get('MAIL_USERNAME'))
