"""
eventquest.api.routes.tasks — Task catalog + participation ledger endpoints
============================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from eventquest.api.deps import CurrentUserId, get_engine
from eventquest.api.serializers import history_dict, task_dict, user_task_dict
from eventquest.engine.patches import TaskPatch
from eventquest.services import ledger_service, task_service

router = APIRouter(prefix="/tasks", tags=["tasks"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class TaskCreate(BaseModel):
    event_id: int
    task_type: str | None = None
    platform: str | None = None
    link_url: str | None = None
    points_value: int | None = None
    description: str | None = None
    is_required: bool = False
    custom_platform: str | None = None


class TaskUpdate(BaseModel):
    task_type: str | None = None
    platform: str | None = None
    custom_platform: str | None = None
    description: str | None = None
    link_url: str | None = None
    points_value: int | None = None
    is_required: bool | None = None


class TaskCompletion(BaseModel):
    proof: Any = None


# ---------------------------------------------------------------------------
# Ledger reads (registered before /{task_id} routes)
# ---------------------------------------------------------------------------
@router.get("/history")
def task_history(user_id: CurrentUserId, engine=Depends(get_engine)):
    entries = ledger_service.get_user_task_history(engine, user_id)
    return {"history": [history_dict(h) for h in entries]}


@router.get("/progress/{event_id}")
def event_progress(event_id: int, user_id: CurrentUserId, engine=Depends(get_engine)):
    progress = ledger_service.get_event_progress(engine, user_id=user_id, event_id=event_id)
    return {
        "event_id": progress.event_id,
        "completed_count": progress.completed_count,
        "total_count": progress.total_count,
        "points_earned": progress.points_earned,
    }


@router.get("/user/event/{event_id}")
def user_tasks_for_event(event_id: int, user_id: CurrentUserId, engine=Depends(get_engine)):
    rows = ledger_service.list_user_tasks_for_event(engine, user_id=user_id, event_id=event_id)
    return {"user_tasks": [user_task_dict(ut) for ut in rows]}


@router.get("/event/{event_id}")
def event_tasks(event_id: int, engine=Depends(get_engine)):
    return {"tasks": [task_dict(t) for t in task_service.list_event_tasks(engine, event_id)]}


# ---------------------------------------------------------------------------
# Catalog mutations
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_task(body: TaskCreate, user_id: CurrentUserId, engine=Depends(get_engine)):
    task = task_service.create_task(
        engine,
        body.event_id,
        caller_id=user_id,
        task_type=body.task_type,
        platform=body.platform,
        link_url=body.link_url,
        points_value=body.points_value,
        description=body.description,
        is_required=body.is_required,
        custom_platform=body.custom_platform,
    )
    return task_dict(task)


@router.get("/{task_id}")
def get_task(task_id: int, engine=Depends(get_engine)):
    return task_dict(task_service.get_task(engine, task_id))


@router.put("/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdate,
    user_id: CurrentUserId,
    engine=Depends(get_engine),
):
    task = task_service.update_task(
        engine, task_id, caller_id=user_id, patch=TaskPatch(**body.model_dump())
    )
    return task_dict(task)


@router.delete("/{task_id}")
def delete_task(task_id: int, user_id: CurrentUserId, engine=Depends(get_engine)):
    task_service.delete_task(engine, task_id, caller_id=user_id)
    return {"success": True, "message": "Task deleted"}


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------
@router.post("/{task_id}/complete")
def complete_task(
    task_id: int,
    user_id: CurrentUserId,
    body: TaskCompletion | None = Body(None),
    engine=Depends(get_engine),
):
    result = ledger_service.complete_task(
        engine,
        user_id=user_id,
        task_id=task_id,
        proof=body.proof if body else None,
    )
    return {
        "success": True,
        "message": "Task completed successfully",
        "points_earned": result.points_earned,
        "completed_at": result.completed_at.isoformat(),
        "verification": result.verification.to_json(),
    }
