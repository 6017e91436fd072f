"""
eventquest.api.routes.events — Event registry endpoints
========================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from eventquest.api.deps import CurrentUserId, get_config, get_engine
from eventquest.api.serializers import event_dict
from eventquest.config import EventQuestConfig
from eventquest.engine.patches import EventPatch
from eventquest.errors import AuthorizationError
from eventquest.services import event_service, ledger_service

router = APIRouter(prefix="/events", tags=["events"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    image_url: str | None = None


class EventUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    image_url: str | None = None
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------
@router.get("")
def list_events(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
):
    result = event_service.list_events(
        engine, page=page, limit=limit or cfg.default_page_size
    )
    return {
        "events": [event_dict(e, creator=e.creator) for e in result.events],
        "total": result.total,
        "total_pages": result.total_pages,
        "current_page": result.current_page,
    }


@router.get("/user/created")
def created_events(user_id: CurrentUserId, engine=Depends(get_engine)):
    return {"events": [event_dict(e) for e in event_service.list_created_events(engine, user_id)]}


@router.get("/user/joined")
def joined_events(user_id: CurrentUserId, engine=Depends(get_engine)):
    return {"events": [event_dict(e) for e in event_service.list_joined_events(engine, user_id)]}


@router.get("/{event_id}")
def get_event(event_id: int, engine=Depends(get_engine)):
    return event_dict(event_service.get_event(engine, event_id), detail=True)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_event(
    body: EventCreate,
    user_id: CurrentUserId,
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
):
    event = event_service.create_event(
        engine,
        creator_id=user_id,
        title=body.title,
        description=body.description,
        start_date=body.start_date,
        end_date=body.end_date,
        image_url=body.image_url,
        require_verified=cfg.require_verified_organizers,
    )
    return event_dict(event)


@router.put("/{event_id}")
def update_event(
    event_id: int,
    body: EventUpdate,
    user_id: CurrentUserId,
    engine=Depends(get_engine),
):
    event = event_service.update_event(
        engine, event_id, caller_id=user_id, patch=EventPatch(**body.model_dump())
    )
    return event_dict(event)


@router.delete("/{event_id}")
def delete_event(event_id: int, user_id: CurrentUserId, engine=Depends(get_engine)):
    event_service.delete_event(engine, event_id, caller_id=user_id)
    return {"success": True, "message": "Event deleted"}


@router.post("/{event_id}/join")
def join_event(event_id: int, user_id: CurrentUserId, engine=Depends(get_engine)):
    event_service.join_event(engine, event_id, user_id=user_id)
    return {"success": True, "message": "Successfully joined event"}


@router.get("/{event_id}/audit")
def audit_event(event_id: int, user_id: CurrentUserId, engine=Depends(get_engine)):
    """Compare stored point totals with the ledger.  Creator only."""
    if event_service.get_event(engine, event_id).creator_id != user_id:
        raise AuthorizationError("Only the event creator can audit it")
    return ledger_service.audit_event_totals(engine, event_id)
