"""
eventquest.engine.patches — Partial Update Structs
===================================================

Every field is optional; ``None`` means "leave as is".  Services apply only
the fields returned by :meth:`changes`, so an omitted field can never be
overwritten with a default.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

__all__ = ["EventPatch", "TaskPatch"]


class _Patch:
    __slots__ = ()

    def changes(self) -> dict[str, Any]:
        """Return ``{field: value}`` for every field that is present."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.changes()


@dataclass(frozen=True, slots=True)
class EventPatch(_Patch):
    title: str | None = None
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    image_url: str | None = None
    is_active: bool | None = None


@dataclass(frozen=True, slots=True)
class TaskPatch(_Patch):
    task_type: str | None = None
    platform: str | None = None
    custom_platform: str | None = None
    description: str | None = None
    link_url: str | None = None
    points_value: int | None = None
    is_required: bool | None = None
