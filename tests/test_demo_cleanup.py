"""
Tests for the hourly demo content cleanup.

Demo content is deleted once it was created more than a day ago and has not
been modified for an hour. Everything outside the demo content group is left
alone, and protection does not stop the cleanup inside the group.
"""

from datetime import datetime, timedelta, timezone

import pytest

from demosite import rsc
from demosite.acl import anonymous
from demosite.extensions import db
from demosite.models import Edge, Resource
from demosite.modules import demo
from demosite.scheduled_tasks import tick_1h_job


def _ago(**kwargs):
    return datetime.now(timezone.utc) - timedelta(**kwargs)


def _demo_group_id():
    return rsc.rid("demo_content_group")


def test_stale_protected_demo_content_is_deleted(installed, make_resource):
    """Created 30h ago, modified 25h ago, protected: gone after the sweep."""
    a = make_resource(
        content_group_id=_demo_group_id(),
        is_protected=True,
        created=_ago(hours=30),
        modified=_ago(hours=25),
    )

    deleted = demo.periodic_cleanup(anonymous())

    assert deleted == 1
    assert db.session.get(Resource, a) is None


def test_recently_modified_demo_content_is_kept(installed, make_resource):
    """Created 30h ago but modified 10 minutes ago: still being used."""
    b = make_resource(
        content_group_id=_demo_group_id(),
        created=_ago(hours=30),
        modified=_ago(minutes=10),
    )

    assert demo.periodic_cleanup(anonymous()) == 0
    assert db.session.get(Resource, b) is not None


def test_young_demo_content_is_kept(installed, make_resource):
    young = make_resource(
        content_group_id=_demo_group_id(),
        created=_ago(hours=5),
        modified=_ago(hours=4),
    )

    demo.periodic_cleanup(anonymous())

    assert db.session.get(Resource, young) is not None


def test_content_outside_demo_group_is_kept(installed, make_resource):
    """Old and idle, but not demo content."""
    c = make_resource(
        content_group_id=rsc.rid("default_content_group"),
        created=_ago(hours=30),
        modified=_ago(hours=25),
    )
    no_group = make_resource(created=_ago(days=10), modified=_ago(days=10))

    assert demo.periodic_cleanup(anonymous()) == 0
    assert db.session.get(Resource, c) is not None
    assert db.session.get(Resource, no_group) is not None


def test_demo_fixtures_survive_cleanup(installed):
    demo.periodic_cleanup(anonymous(), now=datetime.now(timezone.utc) + timedelta(days=30))

    for name in ("demo_user", "demo_content_group", "acl_user_group_demo", "page_logon"):
        assert rsc.rid(name) is not None


def test_mixed_scenario(installed, make_resource):
    group_id = _demo_group_id()
    a = make_resource(content_group_id=group_id, is_protected=True,
                      created=_ago(hours=30), modified=_ago(hours=25))
    b = make_resource(content_group_id=group_id,
                      created=_ago(hours=30), modified=_ago(minutes=10))
    c = make_resource(content_group_id=rsc.rid("default_content_group"),
                      created=_ago(hours=30), modified=_ago(hours=25))

    demo.periodic_cleanup(anonymous())

    assert db.session.get(Resource, a) is None
    assert db.session.get(Resource, b) is not None
    assert db.session.get(Resource, c) is not None


def test_second_run_is_a_no_op(installed, make_resource):
    group_id = _demo_group_id()
    for _ in range(3):
        make_resource(content_group_id=group_id, created=_ago(days=2), modified=_ago(days=2))

    assert demo.periodic_cleanup(anonymous()) == 3
    assert demo.periodic_cleanup(anonymous()) == 0


def test_thresholds_are_strict_and_share_one_now(installed, make_resource):
    now = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
    group_id = _demo_group_id()

    on_age_limit = make_resource(content_group_id=group_id,
                                 created=now - timedelta(hours=24),
                                 modified=now - timedelta(hours=2))
    on_grace_limit = make_resource(content_group_id=group_id,
                                   created=now - timedelta(hours=30),
                                   modified=now - timedelta(hours=1))
    past_both = make_resource(content_group_id=group_id,
                              created=now - timedelta(hours=24, seconds=1),
                              modified=now - timedelta(hours=1, seconds=1))

    assert demo.cleanup_thresholds(now) == (
        datetime(2026, 1, 9, 12, 0),
        datetime(2026, 1, 10, 11, 0),
    )
    assert demo.stale_demo_ids(now) == [past_both]

    demo.periodic_cleanup(anonymous(), now=now)

    assert db.session.get(Resource, on_age_limit) is not None
    assert db.session.get(Resource, on_grace_limit) is not None
    assert db.session.get(Resource, past_both) is None


def test_thresholds_follow_config(app, installed, make_resource):
    app.config["DEMO_MAX_AGE_HOURS"] = 2
    app.config["DEMO_IDLE_GRACE_HOURS"] = 0

    stale = make_resource(content_group_id=_demo_group_id(),
                          created=_ago(hours=3), modified=_ago(minutes=1))

    assert demo.periodic_cleanup(anonymous()) == 1
    assert db.session.get(Resource, stale) is None


def test_missing_demo_group_returns_nothing(app, make_resource):
    """Without the demo module installed there is nothing to clean up."""
    make_resource(created=_ago(days=3), modified=_ago(days=3))

    assert demo.stale_demo_ids(datetime.now(timezone.utc)) == []
    assert demo.periodic_cleanup(anonymous()) == 0
    assert Resource.query.count() == 1


def test_cleanup_removes_edges_of_deleted_content(installed, make_resource):
    stale = make_resource(content_group_id=_demo_group_id(),
                          created=_ago(days=2), modified=_ago(days=2))
    db.session.add(Edge(subject_id=stale, predicate="author", object_id=rsc.rid("demo_user")))
    db.session.commit()

    demo.periodic_cleanup(anonymous())

    assert Edge.query.filter_by(subject_id=stale).count() == 0


def test_failure_stops_sweep_but_keeps_earlier_deletions(installed, make_resource, monkeypatch):
    group_id = _demo_group_id()
    first, second, third = [
        make_resource(content_group_id=group_id, created=_ago(days=2), modified=_ago(days=2))
        for _ in range(3)
    ]

    real_delete = rsc.delete

    def flaky_delete(id, ctx):
        if id == second:
            raise RuntimeError("storage hiccup")
        return real_delete(id, ctx)

    monkeypatch.setattr(rsc, "delete", flaky_delete)

    with pytest.raises(RuntimeError):
        demo.periodic_cleanup(anonymous())

    assert db.session.get(Resource, first) is None
    assert db.session.get(Resource, second) is not None
    assert db.session.get(Resource, third) is not None

    # The next run picks up what was left
    monkeypatch.setattr(rsc, "delete", real_delete)
    assert demo.periodic_cleanup(anonymous()) == 2


def test_hourly_tick_runs_cleanup(installed, make_resource):
    stale = make_resource(content_group_id=_demo_group_id(),
                          created=_ago(days=2), modified=_ago(days=2))

    assert tick_1h_job() == 0
    assert db.session.get(Resource, stale) is None


def test_hourly_tick_logs_and_survives_failures(installed, monkeypatch, caplog):
    def broken(ctx, now=None):
        raise RuntimeError("boom")

    # observe_tick_1h looks periodic_cleanup up at call time
    monkeypatch.setattr(demo, "periodic_cleanup", broken)

    with caplog.at_level("ERROR", logger="scheduled_tasks"):
        assert tick_1h_job() == 1

    assert "boom" in caplog.text
