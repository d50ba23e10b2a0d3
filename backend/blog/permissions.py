"""
Owner/admin rules shared by the post and comment services.

The actor is the authenticated Django user (or None / AnonymousUser).
Admin role is Django's is_staff flag.
"""
from .exceptions import Forbidden


def is_authenticated(actor):
    return actor is not None and actor.is_authenticated


def is_admin(actor):
    return is_authenticated(actor) and actor.is_staff


def require_actor(actor):
    if not is_authenticated(actor):
        raise Forbidden('Authentication required.')


def ensure_owner(actor, owner_id):
    """Only the owner may proceed."""
    require_actor(actor)
    if actor.pk != owner_id:
        raise Forbidden()


def ensure_owner_or_admin(actor, owner_id):
    require_actor(actor)
    if actor.pk != owner_id and not actor.is_staff:
        raise Forbidden()
