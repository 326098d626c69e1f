# lims_core/integrity/actors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

MAX_ORIGIN_LENGTH = 45  # IPv6 textual max


class ActorSource(Protocol):
    """Whatever sits in front of the pipeline and knows who is calling."""

    def current_actor_id(self) -> Optional[UUID]: ...

    def current_origin(self) -> Optional[str]: ...


def system_actor_id() -> UUID:
    """
    Fixed identity used when nobody is authenticated.
    Seeded as a real user row by iam migration 0002.
    """
    raw = getattr(settings, "LIMS_SYSTEM_ACTOR_ID", None)
    try:
        return UUID(str(raw))
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f"LIMS_SYSTEM_ACTOR_ID must be a UUID, got {raw!r}")


@dataclass(frozen=True)
class ActorContext:
    actor_id: UUID
    origin: Optional[str] = None

    @classmethod
    def system(cls, origin: Optional[str] = None) -> "ActorContext":
        return cls(actor_id=system_actor_id(), origin=origin)

    @property
    def is_system(self) -> bool:
        return self.actor_id == system_actor_id()


class RequestActorSource:
    """
    Adapts a Django HttpRequest or DRF Request.
    Auth itself is somebody else's job; we only read request.user.
    """

    def __init__(self, request):
        self.request = request

    def current_actor_id(self) -> Optional[UUID]:
        user = getattr(self.request, "user", None)
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        try:
            return UUID(str(user.pk))
        except (TypeError, ValueError):
            return None

    def current_origin(self) -> Optional[str]:
        meta = getattr(self.request, "META", None) or {}
        forwarded = meta.get("HTTP_X_FORWARDED_FOR")
        if forwarded:
            origin = forwarded.split(",")[0].strip()
        else:
            origin = meta.get("REMOTE_ADDR")
        if not origin:
            return None
        return origin[:MAX_ORIGIN_LENGTH]


def resolve_actor(source: Optional[ActorSource] = None) -> ActorContext:
    """
    Never fails: no source or no authenticated actor -> system identity.
    """
    if source is None:
        return ActorContext.system()

    origin = source.current_origin()
    actor_id = source.current_actor_id()
    if actor_id is None:
        return ActorContext.system(origin=origin)
    return ActorContext(actor_id=actor_id, origin=origin)
