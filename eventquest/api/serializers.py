"""
eventquest.api.serializers — ORM rows → JSON dicts
===================================================
"""

from __future__ import annotations

from datetime import datetime

from eventquest.database.models import Event, Task, User, UserTask
from eventquest.engine.eligibility import required_provider
from eventquest.engine.verification import verification_from_json
from eventquest.services.ledger_service import HistoryEntry


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _verification(data: dict | None) -> dict | None:
    record = verification_from_json(data)
    return record.to_json() if record else None


def user_dict(u: User, *, private: bool = False) -> dict:
    """Serialize a user.  Identities are always summarized without tokens."""
    data = {
        "id": u.id,
        "address": u.address,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "verified": u.verified,
        "total_points": u.total_points,
        "created_at": _iso(u.created_at),
        "identities": {
            i.provider: {"username": i.username, "linked_at": _iso(i.linked_at)}
            for i in u.identities
        },
    }
    if private:
        data["email"] = u.email
        data["last_login"] = _iso(u.last_login)
    return data


def creator_dict(u: User | None) -> dict | None:
    if u is None:
        return None
    return {"id": u.id, "address": u.address, "first_name": u.first_name}


def task_dict(t: Task) -> dict:
    provider = required_provider(t.platform)
    return {
        "id": t.id,
        "event_id": t.event_id,
        "task_type": t.task_type,
        "platform": t.platform,
        "custom_platform": t.custom_platform,
        "description": t.description,
        "link_url": t.link_url,
        "points_value": t.points_value,
        "is_required": t.is_required,
        "required_connection": provider.value if provider else None,
        "created_at": _iso(t.created_at),
    }


def event_dict(e: Event, *, detail: bool = False, creator: User | None = None) -> dict:
    data = {
        "id": e.id,
        "title": e.title,
        "description": e.description,
        "image_url": e.image_url,
        "start_date": _iso(e.start_date),
        "end_date": _iso(e.end_date),
        "is_active": e.is_active,
        "total_points": e.total_points,
        "creator_id": e.creator_id,
        "created_at": _iso(e.created_at),
    }
    if creator is not None:
        data["creator"] = creator_dict(creator)
    if detail:
        data["creator"] = creator_dict(e.creator)
        data["participants"] = [
            {
                "user_id": p.user_id,
                "address": p.user.address if p.user else None,
                "joined_at": _iso(p.joined_at),
                "points_earned": p.points_earned,
            }
            for p in e.participants
        ]
        data["tasks"] = [task_dict(t) for t in e.tasks]
    return data


def user_task_dict(ut: UserTask) -> dict:
    return {
        "id": ut.id,
        "task_id": ut.task_id,
        "event_id": ut.event_id,
        "completed": ut.completed,
        "completed_at": _iso(ut.completed_at),
        "points_earned": ut.points_earned,
        "verification": _verification(ut.verification_data),
        "task": task_dict(ut.task) if ut.task is not None else None,
    }


def history_dict(h: HistoryEntry) -> dict:
    return {
        "event_id": h.event_id,
        "event_title": h.event_title,
        "task_id": h.task_id,
        "task_type": h.task_type,
        "platform": h.platform,
        "description": h.description,
        "points_earned": h.points_earned,
        "completed_at": _iso(h.completed_at),
        "verification": h.verification.to_json() if h.verification else None,
    }
