"""
Access control for resource operations.

Every operation runs with an AuthContext. Permission checks ask the voters
registered on the ``acl_is_allowed`` hook; any DENY wins immediately, then
any ALLOW grants, and if everybody abstains the action is refused.

An elevated (sudo) context skips the voters entirely. Only trusted internal
code calls sudo(); request handlers always start from current_context().
"""

import enum
from dataclasses import dataclass, replace
from typing import Optional

from flask import session

from demosite import hooks
from demosite.extensions import db


ACL_EVENT = 'acl_is_allowed'


class AccessDenied(Exception):
    """Raised when the acting context may not perform an action."""

    def __init__(self, action, target):
        super().__init__(f"Not allowed to {action} {target!r}")
        self.action = action
        self.target = target


class Decision(enum.Enum):
    ALLOW = 'allow'
    DENY = 'deny'
    ABSTAIN = 'abstain'


@dataclass(frozen=True)
class AuthContext:
    """Who is acting. ``user_id`` is None for anonymous visitors and system jobs."""
    user_id: Optional[int] = None
    is_sudo: bool = False

    @property
    def is_anonymous(self):
        return self.user_id is None


def sudo(ctx: AuthContext) -> AuthContext:
    """Return an unrestricted copy of ``ctx``, keeping the acting user."""
    return replace(ctx, is_sudo=True)


def anonymous() -> AuthContext:
    return AuthContext()


def current_context() -> AuthContext:
    """Build the context for the current request from the session."""
    user_id = session.get('user_id')
    return AuthContext(user_id=int(user_id)) if user_id else AuthContext()


class Voter:
    """Policy check consulted for every non-sudo action."""

    def decide(self, action, ctx, target):
        return Decision.ABSTAIN


class DefaultPolicy(Voter):
    """
    Baseline rules used when no module has an opinion.

    Published resources are visible to everybody. Signed-in users may insert
    resources and may update or delete what they created, plus their own
    person resource.
    """

    def decide(self, action, ctx, target):
        from demosite.models import Resource

        if not isinstance(target, int):
            if action == 'insert' and not ctx.is_anonymous:
                return Decision.ALLOW
            return Decision.ABSTAIN

        resource = db.session.get(Resource, target)
        if resource is None:
            return Decision.ABSTAIN

        if action == 'view' and resource.is_published:
            return Decision.ALLOW
        if ctx.is_anonymous:
            return Decision.ABSTAIN

        is_own = resource.creator_id == ctx.user_id or resource.id == ctx.user_id
        if action in ('view', 'update', 'delete') and is_own:
            return Decision.ALLOW
        return Decision.ABSTAIN


def register_voter(voter: Voter, prio=hooks.DEFAULT_PRIO, app=None):
    hooks.get_hooks(app).observe(ACL_EVENT, voter.decide, prio)


def init_app(app):
    register_voter(DefaultPolicy(), prio=1000, app=app)


def is_allowed(action, target, ctx: AuthContext) -> bool:
    if ctx.is_sudo:
        return True

    allowed = False
    for decide in hooks.get_hooks().observers(ACL_EVENT):
        decision = decide(action, ctx, target)
        if decision is Decision.DENY:
            return False
        if decision is Decision.ALLOW:
            allowed = True
    return allowed


def require(action, target, ctx: AuthContext):
    """Raise AccessDenied unless ``ctx`` may perform ``action`` on ``target``."""
    if not is_allowed(action, target, ctx):
        raise AccessDenied(action, target)
