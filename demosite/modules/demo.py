"""
Demo site, automatically reset content after a set period.

Visitors log in with the shared ``demo`` / ``demo`` account. Everything the
demo account creates lands in the demo content group, is kept out of search
engines and is deleted once it is older than a day and has not been edited
for an hour.
"""

from datetime import datetime, timedelta, timezone

from flask import current_app

from demosite import acl, identity, rsc
from demosite.acl import Decision, Voter
from demosite.datamodel import Datamodel
from demosite.extensions import db
from demosite.models import Resource


MOD_TITLE = 'Demo'
MOD_DESCRIPTION = 'Used for the demo site.'
MOD_PRIO = 500
MOD_SCHEMA = 3

DEMO_USERNAME = 'demo'
DEMO_PASSWORD = 'demo'


# -------------------- PERIODIC CLEANUP --------------------

def observe_tick_1h(ctx):
    periodic_cleanup(ctx)


def _as_naive_utc(value):
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def cleanup_thresholds(now):
    """Return ``(created_before, modified_before)`` derived from one point in time."""
    now = _as_naive_utc(now)
    max_age = timedelta(hours=current_app.config.get('DEMO_MAX_AGE_HOURS', 24))
    idle_grace = timedelta(hours=current_app.config.get('DEMO_IDLE_GRACE_HOURS', 1))
    return now - max_age, now - idle_grace


def stale_demo_ids(now):
    """Ids of demo content created before the age limit and idle for the grace period."""
    group_id = rsc.rid('demo_content_group')
    if group_id is None:
        return []

    day_ago, hour_ago = cleanup_thresholds(now)
    rows = (
        db.session.query(Resource.id)
        .filter(
            Resource.created < day_ago,
            Resource.modified < hour_ago,
            Resource.content_group_id == group_id,
        )
        .order_by(Resource.id)
        .all()
    )
    return [row.id for row in rows]


def periodic_cleanup(ctx, now=None):
    """
    Delete all demo content created more than a day ago and not edited in the last hour.

    Protection is cleared first, as protected resources cannot be deleted.
    Rows are deleted one by one and each deletion is committed on its own;
    an error stops the sweep and the next tick picks up what is left.

    Returns:
        int: number of deleted resources
    """
    now = now or datetime.now(timezone.utc)

    if rsc.rid('demo_content_group') is None:
        current_app.logger.warning("Demo cleanup skipped: no demo_content_group resource")
        return 0

    ids = stale_demo_ids(now)
    ctx_sudo = acl.sudo(ctx)
    deleted = 0

    for id in ids:
        # Removed by someone else since the select
        if not rsc.exists(id):
            continue
        if rsc.p(id, 'is_protected'):
            rsc.update(id, {'is_protected': False}, ctx_sudo)
        rsc.delete(id, ctx_sudo)
        deleted += 1

    current_app.logger.info(f"Demo cleanup deleted {deleted} of {len(ids)} stale resources")
    return deleted


# -------------------- ACCESS CONTROL --------------------

class DemoUserGuard(Voter):
    """The demo account may look at itself, but not change or delete itself."""

    def decide(self, action, ctx, target):
        if action == 'view':
            return Decision.ABSTAIN
        if not isinstance(target, int) or isinstance(target, bool):
            return Decision.ABSTAIN
        if ctx.user_id == target and rsc.p(target, 'name') == 'demo_user':
            return Decision.DENY
        return Decision.ABSTAIN


VOTERS = [DemoUserGuard()]


# -------------------- UPDATE INTERCEPTION --------------------

def _is_demo_member(ctx):
    if ctx is None or ctx.is_sudo or ctx.user_id is None:
        return False
    return rsc.has_edge(ctx.user_id, 'hasusergroup', 'acl_user_group_demo')


def observe_rsc_update(update, result):
    """
    Keep demo content out of search engines, whatever the editor asked for.

    Members of the demo user group cannot write outside the demo content
    group; their writes are moved back into it so the cleanup finds them.
    """
    if isinstance(result, rsc.UpdateRejected):
        return result

    demo_group_id = rsc.rid('demo_content_group')
    if demo_group_id is None:
        return result

    group_id = result.get('content_group_id', update.raw_props.get('content_group_id'))
    if group_id != demo_group_id and _is_demo_member(update.ctx):
        result = {**result, 'content_group_id': demo_group_id}
        group_id = demo_group_id

    if group_id == demo_group_id:
        return {**result, 'seo_noindex': True}
    return result


def observe_content_group_default(ctx):
    """Content created by members of the demo user group goes into the demo content group."""
    if _is_demo_member(ctx):
        return rsc.rid('demo_content_group')
    return None


# -------------------- SCHEMA AND DATA --------------------

def manage_schema(previous, ctx):
    """Ensure that the user "demo" and the content group "demo" are created."""
    return Datamodel(
        resources=[
            ('demo_user', 'person', {
                'is_published': True,
                'is_protected': True,
                'title': 'Demo User',
                'name_first': 'Demo',
                'name_surname': 'User',
                'language': ['en'],
                'email': 'demo@example.com',
                'content_group_id': 'system_content_group',
            }),
            ('demo_content_group', 'content_group', {
                'is_published': True,
                'is_protected': True,
                'title': 'Demo content group',
                'summary': 'All demonstration content is created in this content group.',
                'language': ['en'],
                'content_group_id': 'system_content_group',
            }),
            ('acl_user_group_demo', 'acl_user_group', {
                'is_published': True,
                'is_protected': True,
                'title': 'Demo user group',
                'summary': 'The user group for the demo account.',
                'language': ['en'],
                'content_group_id': 'system_content_group',
            }),
            ('page_logon', 'other', {
                'is_published': True,
                'is_protected': True,
                'title': 'Logon',
                'body': '<p>Use username <b>demo</b> with password <b>demo</b>.</p>',
                'language': ['en'],
                'content_group_id': 'system_content_group',
                'page_path': '/logon',
            }),
        ],
        edges=[
            ('demo_user', 'hasusergroup', 'acl_user_group_demo'),
        ],
    )


def manage_data(previous, ctx):
    """Set the username/password of the demo user to "demo/demo"."""
    identity.set_username_pw('demo_user', DEMO_USERNAME, DEMO_PASSWORD, acl.sudo(ctx))
