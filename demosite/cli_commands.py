"""
Flask CLI commands for site installation and maintenance.
"""

import click
from flask.cli import with_appcontext

from demosite.acl import anonymous


@click.command('install-modules')
@with_appcontext
def install_modules_command():
    """
    Install the core datamodel and all enabled modules.

    Safe to run repeatedly: existing resources are left untouched and a
    module is only (re)installed when its schema version changed.
    """
    from demosite.modules import install_modules

    results = install_modules(anonymous())
    if not results:
        click.echo("✓ All modules are up to date.")
        return
    for name, (previous, version) in results.items():
        click.echo(f"✓ Installed {name}: schema {previous or 'none'} -> {version}")


@click.command('demo-cleanup')
@with_appcontext
@click.option('--dry-run', is_flag=True, help='Only list the resources that would be deleted.')
def demo_cleanup_command(dry_run):
    """Run the demo content cleanup once, outside the hourly schedule."""
    from datetime import datetime, timezone
    from demosite.modules import demo

    if dry_run:
        ids = demo.stale_demo_ids(datetime.now(timezone.utc))
        click.echo(f"{len(ids)} stale demo resources: {', '.join(str(i) for i in ids) or '-'}")
        return

    deleted = demo.periodic_cleanup(anonymous())
    click.echo(f"✓ Deleted {deleted} demo resources")


def init_app(app):
    """Register CLI commands with Flask app."""
    app.cli.add_command(install_modules_command)
    app.cli.add_command(demo_cleanup_command)
