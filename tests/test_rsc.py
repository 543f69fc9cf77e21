"""
Tests for the resource layer: name lookup, property access and deletion rules.
"""

from datetime import datetime, timedelta, timezone

import pytest

from demosite import acl, rsc
from demosite.acl import AuthContext, anonymous
from demosite.extensions import db
from demosite.models import Edge, Identity, Resource, _utc_now
from demosite.identity import set_username_pw


def test_rid_resolves_names_and_ids(installed):
    demo_id = db.session.query(Resource.id).filter_by(name="demo_user").scalar()

    assert rsc.rid("demo_user") == demo_id
    assert rsc.rid(demo_id) == demo_id
    assert rsc.rid(str(demo_id)) == demo_id
    assert rsc.rid("no_such_name") is None
    assert rsc.rid(None) is None


def test_rid_misses_are_not_cached(app, make_resource):
    assert rsc.rid("late") is None

    id = make_resource(name="late")

    assert rsc.rid("late") == id


def test_p_reads_columns_and_free_form_props(installed):
    assert rsc.p("demo_user", "category") == "person"
    assert rsc.p("demo_user", "name_first") == "Demo"
    assert rsc.p("demo_user", "nonexistent") is None
    assert rsc.p("no_such_name", "title") is None
    assert rsc.is_a("demo_content_group", "content_group")


def test_update_missing_resource(app):
    with pytest.raises(rsc.ResourceNotFound):
        rsc.update(12345, {"title": "x"}, acl.sudo(anonymous()))


def test_update_ignores_system_columns(installed, make_resource):
    id = make_resource(title="Keep id")

    rsc.update(id, {"id": 999, "creator_id": 42, "title": "Changed"}, acl.sudo(anonymous()))

    resource = db.session.get(Resource, id)
    assert resource.title == "Changed"
    assert resource.creator_id is None


def test_update_bumps_modified_and_modifier(installed, make_resource):
    person = make_resource(category="person")
    id = make_resource(creator_id=person)
    before = db.session.get(Resource, id).modified

    rsc.update(id, {"title": "New"}, AuthContext(user_id=person))

    resource = db.session.get(Resource, id)
    assert resource.modified > before
    assert resource.modifier_id == person


def test_protected_resources_cannot_be_deleted(installed, make_resource):
    id = make_resource(is_protected=True)

    with pytest.raises(rsc.ResourceProtected):
        rsc.delete(id, acl.sudo(anonymous()))
    assert rsc.exists(id)


def test_delete_missing_resource(app):
    with pytest.raises(rsc.ResourceNotFound):
        rsc.delete(4242, acl.sudo(anonymous()))


def test_delete_clears_references_edges_and_identities(installed, make_resource):
    sudo = acl.sudo(anonymous())
    person = make_resource(category="person", name="someone")
    group = make_resource(category="content_group")
    member = make_resource(content_group_id=group, creator_id=person)
    rsc.insert_edge(person, "author", member, sudo)
    set_username_pw(person, "someone", "pw", sudo)

    rsc.delete(person, sudo)
    rsc.delete(group, sudo)

    resource = db.session.get(Resource, member)
    assert resource.creator_id is None
    assert resource.content_group_id is None
    assert Edge.query.count() == 1  # demo_user hasusergroup
    assert Identity.query.filter_by(key="someone").first() is None
    assert rsc.rid("someone") is None


def test_anonymous_cannot_delete(installed, make_resource):
    id = make_resource(is_published=True)

    with pytest.raises(acl.AccessDenied):
        rsc.delete(id, anonymous())


def test_insert_edge_is_idempotent(installed):
    sudo = acl.sudo(anonymous())

    rsc.insert_edge("demo_user", "hasusergroup", "acl_user_group_demo", sudo)

    assert Edge.query.count() == 1


def test_symbolic_names_need_sudo(installed, make_resource):
    person = make_resource(category="person")
    ctx = AuthContext(user_id=person)

    with pytest.raises(acl.AccessDenied):
        rsc.insert({"category": "text", "name": "landing"}, ctx)

    id = rsc.insert({"category": "text", "name": None, "title": "Unnamed"}, ctx)
    with pytest.raises(acl.AccessDenied):
        rsc.update(id, {"name": "landing"}, ctx)

    rsc.update(id, {"name": "landing"}, acl.sudo(ctx))
    assert rsc.rid("landing") == id


def test_unique_collision_is_a_conflict(installed, make_resource):
    sudo = acl.sudo(anonymous())
    id = make_resource(name="taken", page_path="/taken")

    with pytest.raises(rsc.ResourceConflict):
        rsc.insert({"category": "text", "name": "taken"}, sudo)

    other = rsc.insert({"category": "text", "page_path": "/free"}, sudo)
    with pytest.raises(rsc.ResourceConflict):
        rsc.update(other, {"page_path": "/taken"}, sudo)

    assert rsc.p(other, "page_path") == "/free"
    assert rsc.rid("taken") == id


def test_timestamps_are_naive_utc():
    now = _utc_now()

    assert now.tzinfo is None
    assert abs(datetime.now(timezone.utc).replace(tzinfo=None) - now) < timedelta(seconds=5)
