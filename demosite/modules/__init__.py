"""
Site modules.

A module is a plain Python module listed in the MODULES setting. It may
declare:

    MOD_TITLE, MOD_DESCRIPTION   human readable metadata
    MOD_PRIO                     observer priority, lower runs first
    MOD_SCHEMA                   schema version; bump to re-run seeding
    observe_<event>(...)         observers, registered on load
    VOTERS                       acl.Voter instances
    manage_schema(previous, ctx) returns a Datamodel to install
    manage_data(previous, ctx)   imperative seeding after the datamodel

``previous`` is the installed schema version, or None on first install.
"""

import importlib
import inspect

from flask import current_app

from demosite import acl, hooks
from demosite.datamodel import CORE_DATAMODEL, install_datamodel
from demosite.extensions import db
from demosite.models import ModuleSchema


OBSERVER_PREFIX = 'observe_'


def module_name(module):
    return module.__name__.rsplit('.', 1)[-1]


def load_modules(app):
    """Import the enabled modules and register their observers and voters."""
    loaded = [importlib.import_module(path) for path in app.config.get('MODULES', [])]
    loaded.sort(key=lambda m: getattr(m, 'MOD_PRIO', hooks.DEFAULT_PRIO))

    registry = hooks.get_hooks(app)
    for module in loaded:
        prio = getattr(module, 'MOD_PRIO', hooks.DEFAULT_PRIO)
        for attr, func in inspect.getmembers(module, inspect.isfunction):
            if attr.startswith(OBSERVER_PREFIX) and func.__module__ == module.__name__:
                registry.observe(attr[len(OBSERVER_PREFIX):], func, prio)
        for voter in getattr(module, 'VOTERS', ()):
            acl.register_voter(voter, prio, app=app)
        app.logger.debug(f"Loaded module {module_name(module)} (prio {prio})")

    app.extensions['modules'] = loaded
    return loaded


def install_modules(ctx):
    """
    Install the core datamodel and every module whose schema is new or outdated.

    Returns ``{module: (previous, installed)}`` for the modules that ran.
    """
    install_datamodel(CORE_DATAMODEL, ctx)

    results = {}
    for module in current_app.extensions.get('modules', []):
        version = getattr(module, 'MOD_SCHEMA', None)
        if version is None:
            continue

        name = module_name(module)
        row = db.session.get(ModuleSchema, name)
        previous = row.version if row else None
        if previous is not None and previous >= version:
            continue

        current_app.logger.info(f"Installing module {name} schema {previous} -> {version}")
        if hasattr(module, 'manage_schema'):
            datamodel = module.manage_schema(previous, ctx)
            if datamodel is not None:
                install_datamodel(datamodel, ctx)
        if hasattr(module, 'manage_data'):
            module.manage_data(previous, ctx)

        if row is None:
            db.session.add(ModuleSchema(module=name, version=version))
        else:
            row.version = version
        db.session.commit()
        results[name] = (previous, version)

    return results
