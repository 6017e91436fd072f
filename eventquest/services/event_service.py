"""
eventquest.services.event_service — Event Registry
===================================================

Owns Event rows: creation, partial updates, the deletion cascade and the
participant roster.  Every mutation is creator-only except joining.

Joining fans out one pending ``UserTask`` per existing task in the same
transaction as the roster insert.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from eventquest.database.models import Event, EventParticipant, Task, User, UserTask
from eventquest.engine.patches import EventPatch
from eventquest.errors import (
    AlreadyJoinedError,
    AuthorizationError,
    InactiveEventError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EventPage:
    """One page of the public event listing."""
    events: list[Event]
    total: int
    total_pages: int
    current_page: int


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _load_owned_event(session: Session, event_id: int, caller_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    if event.creator_id != caller_id:
        raise AuthorizationError("Only the event creator can modify this event")
    return event


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def create_event(
    engine: Engine,
    *,
    creator_id: int,
    title: str | None,
    description: str | None,
    end_date: datetime | None,
    start_date: datetime | None = None,
    image_url: str | None = None,
    require_verified: bool = True,
) -> Event:
    """Create an event owned by *creator_id*.

    ``start_date`` defaults to now.  When *require_verified* is set, only
    users flagged ``verified`` may organize.
    """
    if not title or not title.strip() or not description or not description.strip():
        raise ValidationError("Please provide all required fields")
    if end_date is None:
        raise ValidationError("Please provide all required fields")

    start = as_utc(start_date) if start_date else datetime.now(UTC)
    end = as_utc(end_date)
    if end < start:
        raise ValidationError("End date must not be before start date")

    with Session(engine, expire_on_commit=False) as session:
        creator = session.get(User, creator_id)
        if creator is None:
            raise NotFoundError("User not found")
        if require_verified and not creator.verified:
            raise AuthorizationError("Only verified organizers can create events")

        event = Event(
            creator_id=creator_id,
            title=title.strip(),
            description=description.strip(),
            start_date=start,
            end_date=end,
            image_url=image_url,
            is_active=True,
            total_points=0,
        )
        session.add(event)
        session.commit()
        session.refresh(event)
        session.expunge(event)

    logger.info("Event %d created by user %d", event.id, creator_id)
    return event


def update_event(
    engine: Engine,
    event_id: int,
    *,
    caller_id: int,
    patch: EventPatch,
) -> Event:
    """Apply the present fields of *patch*; creator only."""
    if patch.is_empty():
        raise ValidationError("No fields to update")
    changes = patch.changes()
    for key in ("title", "description"):
        if key in changes and not str(changes[key]).strip():
            raise ValidationError(f"{key} must not be blank")

    with Session(engine, expire_on_commit=False) as session:
        event = _load_owned_event(session, event_id, caller_id)

        for key, value in changes.items():
            if key in ("start_date", "end_date"):
                value = as_utc(value)
            setattr(event, key, value)

        if as_utc(event.end_date) < as_utc(event.start_date):
            raise ValidationError("End date must not be before start date")

        session.commit()
        session.refresh(event)
        session.expunge(event)

    logger.info(
        "Event %d updated by user %d (%s)",
        event_id, caller_id, ", ".join(sorted(changes)),
    )
    return event


def delete_event(engine: Engine, event_id: int, *, caller_id: int) -> None:
    """Delete an event and everything hanging off it.

    Runs as two steps:

    1. Pause the event and commit, so no completion can pay out from here on
       even if step 2 never finishes.
    2. In one transaction: drop ledger rows, tasks and the roster (which
       removes the event from every participant's joined list), then the
       event row itself (which removes it from the creator's list).
    """
    with Session(engine) as session:
        event = _load_owned_event(session, event_id, caller_id)
        event.is_active = False
        session.commit()

    with Session(engine) as session:
        ledger_rows = session.execute(
            delete(UserTask).where(UserTask.event_id == event_id)
        ).rowcount
        task_rows = session.execute(
            delete(Task).where(Task.event_id == event_id)
        ).rowcount
        roster_rows = session.execute(
            delete(EventParticipant).where(EventParticipant.event_id == event_id)
        ).rowcount
        session.execute(delete(Event).where(Event.id == event_id))
        session.commit()

    logger.info(
        "Event %d deleted by user %d (%d tasks, %d ledger rows, %d participants)",
        event_id, caller_id, task_rows, ledger_rows, roster_rows,
    )


def join_event(engine: Engine, event_id: int, *, user_id: int) -> None:
    """Add *user_id* to the roster and create their pending ledger rows."""
    with Session(engine) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if session.get(User, user_id) is None:
            raise NotFoundError("User not found")
        if not event.is_active:
            raise InactiveEventError("This event is no longer active")
        if session.get(EventParticipant, (event_id, user_id)) is not None:
            raise AlreadyJoinedError("You have already joined this event")

        session.add(EventParticipant(
            event_id=event_id,
            user_id=user_id,
            joined_at=datetime.now(UTC),
            points_earned=0,
        ))

        task_ids = session.scalars(
            select(Task.id).where(Task.event_id == event_id)
        ).all()
        existing = set(session.scalars(
            select(UserTask.task_id).where(
                UserTask.user_id == user_id, UserTask.event_id == event_id
            )
        ).all())
        session.add_all(
            UserTask(user_id=user_id, task_id=task_id, event_id=event_id, completed=False)
            for task_id in task_ids
            if task_id not in existing
        )

        try:
            session.commit()
        except IntegrityError:
            # A concurrent join won the roster primary key
            session.rollback()
            raise AlreadyJoinedError("You have already joined this event")

    logger.info(
        "User %d joined event %d (%d pending tasks)", user_id, event_id, len(task_ids)
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_events(engine: Engine, *, page: int = 1, limit: int = 10) -> EventPage:
    """Newest-first page of events with their creators loaded."""
    page = max(page, 1)
    limit = max(limit, 1)
    with Session(engine) as session:
        total = session.scalar(select(func.count()).select_from(Event)) or 0
        events = session.scalars(
            select(Event)
            .options(selectinload(Event.creator))
            .order_by(Event.created_at.desc(), Event.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    return EventPage(
        events=list(events),
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
    )


def get_event(engine: Engine, event_id: int) -> Event:
    """Event with creator, roster (and each participant's user) and tasks."""
    with Session(engine) as session:
        event = session.scalar(
            select(Event)
            .where(Event.id == event_id)
            .options(
                selectinload(Event.creator),
                selectinload(Event.participants).selectinload(EventParticipant.user),
                selectinload(Event.tasks),
            )
        )
    if event is None:
        raise NotFoundError("Event not found")
    return event


def list_created_events(engine: Engine, user_id: int) -> list[Event]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Event)
            .where(Event.creator_id == user_id)
            .order_by(Event.created_at.desc(), Event.id.desc())
        ).all())


def list_joined_events(engine: Engine, user_id: int) -> list[Event]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Event)
            .join(EventParticipant, EventParticipant.event_id == Event.id)
            .where(EventParticipant.user_id == user_id)
            .order_by(Event.created_at.desc(), Event.id.desc())
        ).all())
