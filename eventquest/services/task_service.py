"""
eventquest.services.task_service — Task Catalog
================================================

Owns Task rows scoped to one event.  Ownership is always checked against
the parent event's creator.

``events.total_points`` is only ever moved with SQL-side increments
(``total_points = total_points + :delta``) in the same transaction as the
task write, so concurrent task edits on one event cannot lose an update.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from eventquest.constants import task_type_allowed
from eventquest.database.models import (
    Event,
    EventParticipant,
    Platform,
    Task,
    TaskType,
    UserTask,
)
from eventquest.engine.descriptions import default_description
from eventquest.engine.patches import TaskPatch
from eventquest.errors import AuthorizationError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _coerce_platform(value: str) -> Platform:
    try:
        return Platform(value)
    except ValueError:
        raise ValidationError(f"Unsupported platform: {value!r}") from None


def _coerce_task_type(value: str) -> TaskType:
    try:
        return TaskType(value)
    except ValueError:
        raise ValidationError(f"Unsupported task type: {value!r}") from None


def _validate_combo(platform: Platform, task_type: TaskType) -> None:
    if not task_type_allowed(platform, task_type):
        raise ValidationError(
            f"Task type {task_type.value!r} is not offered on {platform.value}"
        )


def _validate_points(points_value) -> int:
    try:
        points = int(points_value)
    except (TypeError, ValueError):
        raise ValidationError("pointsValue must be a whole number") from None
    if points < 1:
        raise ValidationError("pointsValue must be at least 1")
    return points


def _bump_event_total(session: Session, event_id: int, delta: int) -> None:
    if delta:
        session.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(total_points=Event.total_points + delta)
        )


def _load_task_for_owner(
    session: Session, task_id: int, caller_id: int, *, lock: bool = False
) -> tuple[Task, Event]:
    stmt = select(Task).where(Task.id == task_id)
    if lock:
        stmt = stmt.with_for_update()
    task = session.scalar(stmt)
    if task is None:
        raise NotFoundError("Task not found")
    event = session.get(Event, task.event_id)
    if event is None:
        raise NotFoundError("Associated event not found")
    if event.creator_id != caller_id:
        raise AuthorizationError("Only the event creator can modify its tasks")
    return task, event


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def create_task(
    engine: Engine,
    event_id: int,
    *,
    caller_id: int,
    task_type: str,
    platform: str,
    link_url: str,
    points_value: int,
    description: str | None = None,
    is_required: bool = False,
    custom_platform: str | None = None,
) -> Task:
    """Add a task to an event and enroll every current participant.

    Raises ``ValidationError`` for missing fields, a non-positive point
    value, or a task type the platform does not offer.
    """
    if not task_type or not platform or not link_url or points_value is None:
        raise ValidationError("Please provide all required fields")
    plat = _coerce_platform(platform)
    ttype = _coerce_task_type(task_type)
    _validate_combo(plat, ttype)
    points = _validate_points(points_value)
    if plat == Platform.OTHER and custom_platform:
        custom_platform = custom_platform.strip() or None
    elif plat != Platform.OTHER:
        custom_platform = None

    if not description or not description.strip():
        description = default_description(ttype, plat, link_url, custom_platform)

    with Session(engine, expire_on_commit=False) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if event.creator_id != caller_id:
            raise AuthorizationError("Not authorized to add tasks to this event")

        task = Task(
            event_id=event_id,
            creator_id=caller_id,
            task_type=ttype.value,
            platform=plat.value,
            custom_platform=custom_platform,
            description=description.strip(),
            link_url=link_url.strip(),
            points_value=points,
            is_required=bool(is_required),
        )
        session.add(task)
        session.flush()

        _bump_event_total(session, event_id, points)

        participant_ids = session.scalars(
            select(EventParticipant.user_id).where(EventParticipant.event_id == event_id)
        ).all()
        session.add_all(
            UserTask(user_id=uid, task_id=task.id, event_id=event_id, completed=False)
            for uid in participant_ids
        )

        session.commit()
        session.refresh(task)
        session.expunge(task)

    logger.info(
        "Task %d (%s/%s, %d pts) added to event %d; %d participants enrolled",
        task.id, plat.value, ttype.value, points, event_id, len(participant_ids),
    )
    return task


def update_task(
    engine: Engine,
    task_id: int,
    *,
    caller_id: int,
    patch: TaskPatch,
) -> Task:
    """Apply the present fields of *patch*.

    A ``points_value`` change moves the event total by the difference.
    Rows already completed keep the points they were paid.
    """
    if patch.is_empty():
        raise ValidationError("No fields to update")
    changes = patch.changes()
    if "points_value" in changes:
        changes["points_value"] = _validate_points(changes["points_value"])
    for key in ("description", "link_url"):
        if key in changes and not str(changes[key]).strip():
            raise ValidationError(f"{key} must not be blank")

    with Session(engine, expire_on_commit=False) as session:
        task, event = _load_task_for_owner(session, task_id, caller_id, lock=True)

        plat = _coerce_platform(changes.get("platform", task.platform))
        ttype = _coerce_task_type(changes.get("task_type", task.task_type))
        _validate_combo(plat, ttype)

        delta = 0
        if "points_value" in changes:
            delta = changes["points_value"] - task.points_value

        for key, value in changes.items():
            if key in ("platform", "task_type"):
                value = str(value)
            setattr(task, key, value)
        if plat != Platform.OTHER:
            task.custom_platform = None

        _bump_event_total(session, event.id, delta)

        session.commit()
        session.refresh(task)
        session.expunge(task)

    logger.info(
        "Task %d updated by user %d (%s; event total %+d)",
        task_id, caller_id, ", ".join(sorted(changes)), delta,
    )
    return task


def delete_task(engine: Engine, task_id: int, *, caller_id: int) -> None:
    """Remove a task, its ledger rows, and its value from the event total."""
    with Session(engine) as session:
        task, event = _load_task_for_owner(session, task_id, caller_id, lock=True)
        points = task.points_value
        event_id = event.id

        _bump_event_total(session, event_id, -points)
        removed = session.execute(
            delete(UserTask).where(UserTask.task_id == task_id)
        ).rowcount
        session.execute(delete(Task).where(Task.id == task_id))
        session.commit()

    logger.info(
        "Task %d deleted from event %d by user %d (-%d pts, %d ledger rows)",
        task_id, event_id, caller_id, points, removed,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_task(engine: Engine, task_id: int) -> Task:
    with Session(engine) as session:
        task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def list_event_tasks(engine: Engine, event_id: int) -> list[Task]:
    """Tasks of an event, oldest first."""
    with Session(engine) as session:
        return list(session.scalars(
            select(Task)
            .where(Task.event_id == event_id)
            .order_by(Task.created_at, Task.id)
        ).all())
