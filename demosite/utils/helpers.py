"""Small helpers shared by routes and templates."""

from datetime import date, datetime, timezone
from urllib.parse import urljoin, urlparse

import pytz
from flask import current_app, request


def format_utc_iso(dt):
    """Return a UTC ISO-8601 string (with trailing Z) for a datetime or None."""
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def format_datetime(value, fmt='%Y-%m-%d %H:%M'):
    """
    Convert a UTC datetime to the site timezone (SITE_TIMEZONE) and format it.
    Handles both datetime and date objects.
    """
    if not value:
        return ''

    tz_name = current_app.config.get('SITE_TIMEZONE', 'UTC')
    try:
        target_tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        current_app.logger.warning(f"Invalid SITE_TIMEZONE '{tz_name}', defaulting to UTC.")
        target_tz = pytz.utc

    # Convert date objects to datetime objects at midnight
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())

    # Localize naive datetimes as UTC before converting
    dt = value if getattr(value, 'tzinfo', None) else pytz.utc.localize(value)
    return dt.astimezone(target_tz).strftime(fmt)


def is_safe_url(target):
    """
    Ensure a redirect URL is safe by checking if it's on the same domain.
    """
    # Allow empty targets
    if not target:
        return True
    ref_url = urlparse(request.host_url)
    test_url = urlparse(urljoin(request.host_url, target))
    return test_url.scheme in ('http', 'https') and ref_url.netloc == test_url.netloc
