"""Username/password identities for person resources."""

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from demosite import acl, rsc
from demosite.extensions import db
from demosite.models import Identity, _utc_now


USERNAME_PW = 'username_pw'


def set_username_pw(name_or_id, username, password, ctx):
    """
    Set (or replace) the login credential of a resource.

    Needs update rights on the resource (or a sudo context). Raises
    ResourceNotFound when the resource does not exist.
    """
    rsc_id = rsc.rid(name_or_id)
    if rsc_id is None or not rsc.exists(rsc_id):
        raise rsc.ResourceNotFound(name_or_id)
    acl.require('update', rsc_id, ctx)

    username = username.strip().lower()
    now = _utc_now()

    # One username per resource; a taken username moves to this resource
    Identity.query.filter(
        Identity.type == USERNAME_PW,
        (Identity.rsc_id == rsc_id) | (Identity.key == username),
    ).delete(synchronize_session=False)

    db.session.add(Identity(
        rsc_id=rsc_id,
        type=USERNAME_PW,
        key=username,
        password_hash=generate_password_hash(password),
        created=now,
        modified=now,
    ))
    db.session.commit()
    current_app.logger.info(f"Set username {username!r} for resource {rsc_id}")


def check_username_pw(username, password):
    """Return the resource id for valid credentials, otherwise None."""
    if not username or not password:
        return None
    identity = Identity.query.filter_by(type=USERNAME_PW, key=username.strip().lower()).first()
    if identity is None or not identity.password_hash:
        return None
    if not check_password_hash(identity.password_hash, password):
        return None
    return identity.rsc_id


def get_username(name_or_id):
    rsc_id = rsc.rid(name_or_id)
    if rsc_id is None:
        return None
    identity = Identity.query.filter_by(type=USERNAME_PW, rsc_id=rsc_id).first()
    return identity.key if identity else None
