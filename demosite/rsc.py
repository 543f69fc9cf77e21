"""
Resource store operations.

All reads and writes of resources by site code go through this module so
that access control and the ``rsc_update`` interception hook are applied
consistently. Fixed resources are addressed by their symbolic name through
rid(); ids are looked up lazily and cached per application context.
"""

from dataclasses import dataclass, field
from typing import Optional

from flask import current_app, g
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from demosite import acl, hooks
from demosite.extensions import db
from demosite.models import Edge, Identity, PROPERTY_COLUMNS, Resource, SYSTEM_COLUMNS, _utc_now


RSC_UPDATE_EVENT = 'rsc_update'
CONTENT_GROUP_DEFAULT_EVENT = 'content_group_default'

# Columns that may reference another resource and are cleared when it is deleted
_REFERENCE_COLUMNS = ('content_group_id', 'creator_id', 'modifier_id')

# Symbolic names are reserved for seeded resources
_SUDO_ONLY_PROPS = ('name',)


class ResourceNotFound(LookupError):
    def __init__(self, id):
        super().__init__(f"Resource {id!r} does not exist")
        self.id = id


class ResourceProtected(Exception):
    def __init__(self, id):
        super().__init__(f"Resource {id} is protected and cannot be deleted")
        self.id = id


class ResourceConflict(Exception):
    """A write that collides with a unique property of another resource."""

    def __init__(self, id=None):
        super().__init__("Resource conflicts with an existing resource")
        self.id = id


class UpdateRejected(Exception):
    """An update refused by a ``rsc_update`` observer.

    Observers return an instance instead of raising it, so that later
    observers see the failure and can pass it on unchanged.
    """

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


@dataclass
class RscUpdate:
    """What the ``rsc_update`` observers know about the pending write.

    ``raw_props`` are the stored properties before the write; empty for inserts.
    ``ctx`` is the acting context.
    """
    id: Optional[int]
    action: str = 'update'
    raw_props: dict = field(default_factory=dict)
    ctx: Optional[acl.AuthContext] = None


# -------------------- LOOKUPS --------------------

def _rid_cache():
    return g.setdefault('_rid_cache', {})


def rid(name_or_id):
    """
    Resolve a symbolic name (or an id) to a resource id.

    Returns None when nothing matches. Hits are cached for the rest of the
    application context; misses are not, so a resource seeded later in the
    same context is still found.
    """
    if name_or_id is None:
        return None
    if isinstance(name_or_id, int):
        return name_or_id
    if isinstance(name_or_id, str) and name_or_id.isdigit():
        return int(name_or_id)

    cache = _rid_cache()
    if name_or_id in cache:
        return cache[name_or_id]

    row = db.session.query(Resource.id).filter(Resource.name == name_or_id).first()
    if row is None:
        return None
    cache[name_or_id] = row[0]
    return row[0]


def _forget(name):
    if name:
        _rid_cache().pop(name, None)


def get(name_or_id):
    id = rid(name_or_id)
    return db.session.get(Resource, id) if id is not None else None


def exists(name_or_id):
    return get(name_or_id) is not None


def p(name_or_id, prop):
    """Return a single property of a resource, or None."""
    resource = get(name_or_id)
    if resource is None:
        return None
    return resource.to_props().get(prop)


def is_a(name_or_id, category):
    return p(name_or_id, 'category') == category


# -------------------- WRITES --------------------

def _normalize(props):
    """Copy ``props`` and resolve a symbolic content group to its id."""
    props = dict(props)
    group = props.get('content_group_id')
    if isinstance(group, str):
        props['content_group_id'] = rid(group)
    return props


def _apply(resource, props):
    extra = {}
    for key, value in props.items():
        if key in SYSTEM_COLUMNS:
            continue
        if key in PROPERTY_COLUMNS:
            setattr(resource, key, value)
        else:
            extra[key] = value
    if extra:
        # Reassign so SQLAlchemy notices the JSON change
        resource.props = {**(resource.props or {}), **extra}


def _require_sudo_props(action, props, resource, ctx):
    if ctx.is_sudo:
        return
    for key in _SUDO_ONLY_PROPS:
        if key in props and props[key] != getattr(resource, key, None):
            raise acl.AccessDenied(action, key)


def _commit(id=None):
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.info(f"Rejected conflicting write on resource {id}: {e.orig}")
        raise ResourceConflict(id) from e


def _intercept(props, update):
    result = hooks.foldl(RSC_UPDATE_EVENT, props, update)
    if isinstance(result, UpdateRejected):
        raise result
    return result


def insert(props, ctx):
    """Create a resource and return its id."""
    props = _normalize(props)
    category = props.get('category') or 'other'
    acl.require('insert', category, ctx)
    _require_sudo_props('insert', props, None, ctx)

    if props.get('content_group_id') is None:
        default_group = hooks.first(CONTENT_GROUP_DEFAULT_EVENT, ctx)
        props['content_group_id'] = default_group if default_group is not None else rid('default_content_group')

    props = _intercept(props, RscUpdate(id=None, action='insert', ctx=ctx))

    now = _utc_now()
    resource = Resource(
        category=category,
        creator_id=ctx.user_id,
        modifier_id=ctx.user_id,
        created=now,
        modified=now,
    )
    _apply(resource, props)
    db.session.add(resource)
    _commit()
    current_app.logger.debug(f"Inserted resource {resource.id} ({category})")
    return resource.id


def update(name_or_id, props, ctx):
    """Update properties of an existing resource; returns its id."""
    resource = get(name_or_id)
    if resource is None:
        raise ResourceNotFound(name_or_id)
    acl.require('update', resource.id, ctx)
    _require_sudo_props('update', props, resource, ctx)

    props = _intercept(
        _normalize(props),
        RscUpdate(id=resource.id, action='update', raw_props=resource.to_props(), ctx=ctx),
    )

    old_name = resource.name
    _apply(resource, props)
    resource.modifier_id = ctx.user_id
    resource.modified = _utc_now()
    _commit(resource.id)

    if resource.name != old_name:
        _forget(old_name)
    return resource.id


def delete(name_or_id, ctx):
    """Delete a resource together with its edges and identities."""
    resource = get(name_or_id)
    if resource is None:
        raise ResourceNotFound(name_or_id)
    acl.require('delete', resource.id, ctx)
    if resource.is_protected:
        raise ResourceProtected(resource.id)

    id = resource.id
    name = resource.name

    # Dependents first, then references, then the row itself
    Edge.query.filter(or_(Edge.subject_id == id, Edge.object_id == id)).delete(synchronize_session=False)
    Identity.query.filter_by(rsc_id=id).delete(synchronize_session=False)
    for column in _REFERENCE_COLUMNS:
        Resource.query.filter(getattr(Resource, column) == id).update(
            {column: None}, synchronize_session=False
        )
    db.session.delete(resource)
    db.session.commit()

    _forget(name)
    current_app.logger.info(f"Deleted resource {id}")


# -------------------- EDGES --------------------

def has_edge(subject, predicate, obj):
    subject_id, object_id = rid(subject), rid(obj)
    if subject_id is None or object_id is None:
        return False
    return Edge.query.filter_by(
        subject_id=subject_id, predicate=predicate, object_id=object_id
    ).first() is not None


def insert_edge(subject, predicate, obj, ctx):
    """Connect two resources; a no-op if the edge already exists."""
    subject_id, object_id = rid(subject), rid(obj)
    if not exists(subject_id):
        raise ResourceNotFound(subject)
    if not exists(object_id):
        raise ResourceNotFound(obj)
    acl.require('update', subject_id, ctx)

    if has_edge(subject_id, predicate, object_id):
        return
    db.session.add(Edge(subject_id=subject_id, predicate=predicate, object_id=object_id))
    db.session.commit()
