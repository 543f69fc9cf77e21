"""
Main routes for the demo site.

Health check, the logon page and logoff. The logon page body comes from the
``page_logon`` resource, so it can be edited like any other content.
"""

from datetime import datetime, timezone

from flask import Blueprint, redirect, url_for, jsonify, current_app, session, request, flash, render_template
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from demosite import acl, rsc
from demosite.extensions import db, limiter
from demosite.forms import LogonForm
from demosite.identity import check_username_pw
from demosite.utils.helpers import is_safe_url

# Create blueprint
main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def home():
    """Redirect to the logon page."""
    return redirect(url_for('main.logon'))


@main_bp.route('/health')
def health_check():
    """Simple health check endpoint for uptime monitoring."""
    try:
        db.session.execute(text('SELECT 1'))
        return 'ok', 200
    except SQLAlchemyError:
        current_app.logger.exception('Health check failed')
        return jsonify(error='Database error'), 500


# -------------------- LOGON --------------------

@main_bp.route('/logon', methods=['GET', 'POST'])
@limiter.limit("10 per minute", methods=['POST'])
def logon():
    """Show the logon instructions page and sign in with a username/password."""
    ctx = acl.current_context()
    page = rsc.get('page_logon')
    if page is not None and not acl.is_allowed('view', page.id, ctx):
        page = None

    form = LogonForm()
    if form.validate_on_submit():
        user_id = check_username_pw(form.username.data, form.password.data)
        if user_id:
            session.clear()
            session['user_id'] = user_id
            session['login_time'] = datetime.now(timezone.utc).isoformat()
            current_app.logger.info(f"User {user_id} logged on")
            flash("You are logged on.")
            next_url = request.args.get("next")
            if not is_safe_url(next_url):
                return redirect(url_for('main.logon'))
            return redirect(next_url or url_for('main.logon'))
        current_app.logger.warning(f"Failed logon for username {form.username.data!r}")
        flash("Invalid username or password.", "error")
        return redirect(url_for('main.logon'))

    user = rsc.get(ctx.user_id) if ctx.user_id else None
    return render_template('page.html', page=page, form=form, user=user)


@main_bp.route('/logoff')
def logoff():
    session.pop('user_id', None)
    session.pop('login_time', None)
    flash("You are logged off.")
    return redirect(url_for('main.logon'))
