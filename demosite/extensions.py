"""
Shared Flask extension instances.

Created unbound here and initialized in create_app(). The rate limiter reads
its storage and default limits from the RATELIMIT_* config keys.
"""

from flask import current_app, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from apscheduler.schedulers.background import BackgroundScheduler
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
# The hourly tick only needs one background thread
scheduler = BackgroundScheduler(timezone="UTC")


def get_client_ip():
    """
    Client address used as the rate limit key.

    X-Forwarded-For is only honoured behind a known proxy (TRUST_PROXY_HEADERS),
    otherwise any visitor could pick their own bucket.
    """
    if current_app.config.get('TRUST_PROXY_HEADERS'):
        forwarded_for = request.headers.get('X-Forwarded-For')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()
    return get_remote_address()


limiter = Limiter(key_func=get_client_ip, strategy="fixed-window")
