"""Propagate the acting user and role through the call stack using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import NamedTuple

from core.models.role import Role


class Actor(NamedTuple):
    user_id: int
    role: Role


_current_actor: ContextVar[Actor | None] = ContextVar("current_actor", default=None)


def get_current_actor() -> Actor | None:
    """
    Actor for the current request, or None outside of one.

    Unlike a missing session, a missing actor is not fatal: background
    writes are audited without attribution.
    """
    return _current_actor.get()


def set_current_actor(user_id: int, role: Role) -> None:
    """
    Set the acting user in context.

    Called by the actor middleware once the role and user headers are parsed.
    """
    _current_actor.set(Actor(user_id=user_id, role=role))


def clear_current_actor() -> None:
    """
    Clear actor context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_actor.set(None)


@contextmanager
def actor_context(user_id: int, role: Role):
    """
    Context manager for scoped actor context.

    Usage:
        with actor_context(user_id, Role.OWNER):
            service.change_status(...)
    """
    token = _current_actor.set(Actor(user_id=user_id, role=role))
    try:
        yield
    finally:
        _current_actor.reset(token)
