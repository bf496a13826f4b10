"""
Flask blueprints for organizing routes by domain.
"""


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    from blueprints.api import api_bp

    app.register_blueprint(api_bp)
