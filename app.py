"""
Main Flask application for the Becky personal finance API.
"""
import os
import logging
import click
from flask import Flask, request, redirect, jsonify

from extensions import db, limiter, migrate
from email_service import init_mail
from config import config, get_config_name
from blueprints import register_blueprints
from services.scheduler_service import init_scheduler, run_due_reports_with_app

API_VERSION = '1.0.0'

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# Load configuration from centralized config module
config_name = get_config_name()
app.config.from_object(config[config_name])

# Initialize extensions with app
db.init_app(app)
migrate.init_app(app, db)  # Flask-Migrate for database migrations
limiter.init_app(app)  # Reads RATELIMIT_* from app.config
init_mail(app)  # Flask-Mail for scheduled reports

register_blueprints(app)


# ============================================================================
# Security Middleware
# ============================================================================

@app.before_request
def enforce_https():
    """Redirect HTTP to HTTPS in production."""
    if not app.debug and not app.testing:
        # Check X-Forwarded-Proto header (set by reverse proxies)
        if request.headers.get('X-Forwarded-Proto') == 'http':
            url = request.url.replace('http://', 'https://', 1)
            return redirect(url, code=301)


@app.after_request
def add_security_headers(response):
    """Add security headers to all responses."""
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

    csp_policy = app.config.get('CSP_POLICY')
    if csp_policy:
        response.headers['Content-Security-Policy'] = csp_policy

    if not app.debug and not app.testing:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

    return response


# ============================================================================
# JSON error pages
# ============================================================================

@app.errorhandler(404)
def not_found(error):
    return jsonify({'error': 'Not found'}), 404


@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({'error': 'Method not allowed'}), 405


@app.errorhandler(413)
def payload_too_large(error):
    return jsonify({'error': 'Request is too large'}), 413


@app.errorhandler(429)
def rate_limited(error):
    return jsonify({'error': 'Too many requests, please try again later'}), 429


@app.errorhandler(500)
def internal_error(error):
    db.session.rollback()
    return jsonify({'error': 'Internal server error'}), 500


@app.route('/', methods=['GET'])
def index():
    """Health check."""
    return jsonify({
        'message': 'Becky API Server',
        'version': API_VERSION,
        'status': 'running'
    })


# Initialize database tables when app starts (for production with Gunicorn)
def init_db():
    """Create database tables if they don't exist.

    Schema changes are handled by Flask-Migrate
    ('flask db migrate' and 'flask db upgrade').
    """
    with app.app_context():
        db.create_all()
        logger.info('Database tables created (if not already existing)')

        # Verify schema completeness - warn if any columns are missing
        verify_schema_completeness()


def verify_schema_completeness():
    """Check all model columns exist in database, log warnings for any missing.

    Detects schema drift between the models and an existing database.
    """
    from sqlalchemy import inspect
    from models import User, UserContext, Account, Movement, Contact, EmailReport

    all_models = [User, UserContext, Account, Movement, Contact, EmailReport]

    try:
        inspector = inspect(db.engine)
        issues_found = False

        for model in all_models:
            table_name = model.__tablename__
            db_columns = {col['name'] for col in inspector.get_columns(table_name)}
            model_columns = {col.name for col in model.__table__.columns}
            missing = model_columns - db_columns

            if missing:
                issues_found = True
                logger.warning(f'Table "{table_name}" missing columns: {sorted(missing)}')
                logger.warning('  -> Run "flask db migrate" and "flask db upgrade"')

        if not issues_found:
            logger.info('Schema verification passed - all model columns exist in database')
    except Exception as e:
        logger.warning(f'Schema verification skipped: {e}')


# Call initialization when module is loaded
init_db()

# Background scheduler for email reports (disabled in debug/testing)
_scheduler = init_scheduler(app)


@app.cli.command('send-reports')
def send_reports_command():
    """Send every report subscription that is due."""
    results = run_due_reports_with_app(app)
    click.echo(f"Reports sent: {results['sent']}, failed: {results['failed']}")


@app.cli.command('seed')
def seed_command():
    """Create the demo user with sample data."""
    from seed import seed_demo_data

    user = seed_demo_data()
    click.echo(f'Demo user ready: {user.email}')


if __name__ == '__main__':
    # Default to 5001 for local development (avoids macOS AirPlay Receiver conflict)
    port = int(os.environ.get('PORT', 5001))

    # Allow disabling auto-reload for stable testing (NO_RELOAD=1 python app.py)
    use_reloader = os.environ.get('NO_RELOAD') != '1'

    # Becky tool calls re-enter this server while a chat request is in flight
    app.run(debug=app.debug, host='0.0.0.0', port=port, use_reloader=use_reloader, threaded=True)
