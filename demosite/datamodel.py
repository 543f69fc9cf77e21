"""
Declarative seed data.

A Datamodel lists named resources and edges that must exist. Installing it
creates whatever is missing and leaves existing resources untouched, so it
is safe to apply on every start.
"""

from dataclasses import dataclass, field

from flask import current_app

from demosite import acl, rsc


@dataclass
class Datamodel:
    # (name, category, props)
    resources: list = field(default_factory=list)
    # (subject name, predicate, object name)
    edges: list = field(default_factory=list)


CORE_DATAMODEL = Datamodel(
    resources=[
        ('system_content_group', 'content_group', {
            'is_published': True,
            'is_protected': True,
            'title': 'System content',
            'summary': 'Content and users needed to run the site.',
            'language': ['en'],
        }),
        ('default_content_group', 'content_group', {
            'is_published': True,
            'is_protected': True,
            'title': 'Default content group',
            'language': ['en'],
            'content_group_id': 'system_content_group',
        }),
        ('administrator', 'person', {
            'is_published': False,
            'is_protected': True,
            'title': 'Site Administrator',
            'language': ['en'],
            'content_group_id': 'system_content_group',
        }),
    ],
)


def install_datamodel(datamodel: Datamodel, ctx):
    """Create missing resources and edges; returns the names that were created."""
    ctx = acl.sudo(ctx)
    created = []

    for name, category, props in datamodel.resources:
        if rsc.rid(name) is not None:
            continue
        rsc.insert({**props, 'name': name, 'category': category}, ctx)
        created.append(name)

    for subject, predicate, obj in datamodel.edges:
        rsc.insert_edge(subject, predicate, obj, ctx)

    if created:
        current_app.logger.info(f"Datamodel created resources: {', '.join(created)}")
    return created
