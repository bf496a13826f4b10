"""
Flask extensions instantiated without app binding.

These are bound to the application in app.py.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_mail import Mail

# Database
db = SQLAlchemy()

# Schema migrations (flask db ...)
migrate = Migrate()

# Rate Limiter (will be configured with app)
limiter = Limiter(key_func=get_remote_address)

# Mail
mail = Mail()
