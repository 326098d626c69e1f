# lims_core/integrity/exceptions.py
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID


class PipelineError(Exception):
    """Base for everything the write pipeline raises on purpose."""


class ConcurrencyConflict(PipelineError):
    """
    The row changed (or vanished) since it was loaded.
    Nothing from the unit of work was persisted; reload and decide.

    `attempted` holds the values the caller tried to write,
    `current` the row as the store holds it now (None if it is gone).
    """

    def __init__(
        self,
        *,
        entity_type: str,
        entity_id: UUID,
        attempted: Dict[str, Any],
        current: Optional[Dict[str, Any]],
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempted = attempted
        self.current = current
        super().__init__(f"{entity_type} {entity_id} was modified by someone else; reload and retry.")

    def as_details(self) -> Dict[str, Any]:
        return {
            "entity_type": str(self.entity_type),
            "entity_id": str(self.entity_id),
            "attempted": self.attempted,
            "current": self.current,
        }


class StoreFailure(PipelineError):
    """The store rejected the commit for reasons unrelated to versioning."""


class CapabilityMisuse(PipelineError):
    """Programming error (e.g. updating an entity that was never loaded). Not recoverable."""
