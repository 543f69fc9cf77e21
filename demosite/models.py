"""
Database models for the demo site.

A resource is the generic content record: pages, persons, content groups and
user groups all live in the same table and are told apart by their category.
Times are stored as naive UTC datetimes.
"""

from datetime import datetime, timezone

from demosite.extensions import db


def _utc_now():
    """Current UTC time as a naive datetime, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Properties stored in their own column; everything else goes into Resource.props
PROPERTY_COLUMNS = (
    'name',
    'category',
    'title',
    'summary',
    'body',
    'page_path',
    'email',
    'language',
    'is_published',
    'is_protected',
    'seo_noindex',
    'content_group_id',
)

# Maintained by the resource layer, never taken from caller supplied props
SYSTEM_COLUMNS = ('id', 'creator_id', 'modifier_id', 'created', 'modified')


# -------------------- MODELS --------------------

class Resource(db.Model):
    """
    Generic content record.

    Fixed resources (the demo user, content groups, the logon page) carry a
    unique symbolic ``name`` so code can find them without knowing their id.
    A protected resource cannot be deleted until the flag is cleared.
    """
    __tablename__ = 'rsc'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), unique=True, nullable=True)
    category = db.Column(db.String(80), nullable=False, default='other')

    title = db.Column(db.Text, nullable=True)
    summary = db.Column(db.Text, nullable=True)
    body = db.Column(db.Text, nullable=True)
    page_path = db.Column(db.String(255), unique=True, nullable=True)
    email = db.Column(db.String(255), nullable=True)
    language = db.Column(db.JSON, nullable=True)

    is_published = db.Column(db.Boolean, default=False, nullable=False)
    is_protected = db.Column(db.Boolean, default=False, nullable=False)
    seo_noindex = db.Column(db.Boolean, default=False, nullable=False)

    content_group_id = db.Column(db.Integer, db.ForeignKey('rsc.id', ondelete='SET NULL'), nullable=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('rsc.id', ondelete='SET NULL'), nullable=True)
    modifier_id = db.Column(db.Integer, db.ForeignKey('rsc.id', ondelete='SET NULL'), nullable=True)

    created = db.Column(db.DateTime, default=_utc_now, nullable=False)
    modified = db.Column(db.DateTime, default=_utc_now, nullable=False)

    # Free-form properties (name_first, name_surname, ...)
    props = db.Column(db.JSON, nullable=True)

    __table_args__ = (
        db.Index('ix_rsc_content_group_created_modified', 'content_group_id', 'created', 'modified'),
        db.Index('ix_rsc_category', 'category'),
    )

    def to_props(self):
        """Return all properties, column and free-form, as one flat dict."""
        result = dict(self.props or {})
        for column in SYSTEM_COLUMNS + PROPERTY_COLUMNS:
            result[column] = getattr(self, column)
        return result

    def __repr__(self):
        label = self.name or self.title
        return f'<Resource {self.id} {self.category} {label!r}>'


class Edge(db.Model):
    """Directed, named connection between two resources."""
    __tablename__ = 'edge'

    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('rsc.id', ondelete='CASCADE'), nullable=False)
    predicate = db.Column(db.String(80), nullable=False)
    object_id = db.Column(db.Integer, db.ForeignKey('rsc.id', ondelete='CASCADE'), nullable=False)
    created = db.Column(db.DateTime, default=_utc_now, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('subject_id', 'predicate', 'object_id', name='uq_edge_triple'),
        db.Index('ix_edge_object', 'object_id', 'predicate'),
    )

    def __repr__(self):
        return f'<Edge {self.subject_id} -{self.predicate}-> {self.object_id}>'


class Identity(db.Model):
    """
    Login credential attached to a resource.

    Only ``username_pw`` identities are used; ``key`` holds the username and
    ``password_hash`` a Werkzeug password hash.
    """
    __tablename__ = 'identity'

    id = db.Column(db.Integer, primary_key=True)
    rsc_id = db.Column(db.Integer, db.ForeignKey('rsc.id', ondelete='CASCADE'), nullable=False)
    type = db.Column(db.String(32), nullable=False)
    key = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.Text, nullable=True)
    created = db.Column(db.DateTime, default=_utc_now, nullable=False)
    modified = db.Column(db.DateTime, default=_utc_now, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('type', 'key', name='uq_identity_type_key'),
        db.Index('ix_identity_rsc', 'rsc_id'),
    )

    def __repr__(self):
        return f'<Identity {self.type}:{self.key} rsc_id={self.rsc_id}>'


class ModuleSchema(db.Model):
    """Installed schema version per module, so seeding runs only on install or upgrade."""
    __tablename__ = 'module_schema'

    module = db.Column(db.String(128), primary_key=True)
    version = db.Column(db.Integer, nullable=False)
    installed_at = db.Column(db.DateTime, default=_utc_now, nullable=False)

    def __repr__(self):
        return f'<ModuleSchema {self.module} v{self.version}>'
