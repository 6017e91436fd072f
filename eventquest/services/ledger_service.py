"""
eventquest.services.ledger_service — Participation Ledger
==========================================================

The only writer of point totals.  A (user, task) pair moves through::

    NONE ──(join / task fan-out / lazy repair)──► PENDING ──(complete)──► COMPLETED

``COMPLETED`` is terminal.  A completion writes three things in one
transaction:

1. the ``user_tasks`` row, via compare-and-set on ``completed = false``;
2. ``users.total_points += points``;
3. ``event_participants.points_earned += points``.

Both counters are SQL-side increments, never read-modify-write in Python.
The ``(user_id, task_id)`` unique constraint backs the lazy-insert path
when two requests race to create the same pending row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from eventquest.database.models import (
    Event,
    EventParticipant,
    LinkedIdentity,
    Task,
    User,
    UserTask,
)
from eventquest.engine.eligibility import required_provider
from eventquest.engine.verification import (
    CallerProof,
    SelfVerification,
    VerificationRecord,
    verification_from_json,
)
from eventquest.errors import (
    AlreadyCompletedError,
    ConsistencyError,
    InactiveEventError,
    MissingConnectionError,
    NotFoundError,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CompletionResult:
    user_task_id: int
    task_id: int
    event_id: int
    points_earned: int
    completed_at: datetime
    verification: VerificationRecord


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    event_id: int
    event_title: str
    task_id: int
    task_type: str
    platform: str
    description: str
    points_earned: int
    completed_at: datetime | None
    verification: VerificationRecord | None = None


@dataclass(frozen=True, slots=True)
class EventProgress:
    event_id: int
    completed_count: int
    total_count: int
    points_earned: int


@dataclass(slots=True)
class PublicProfile:
    user: User
    history: list[HistoryEntry] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------
def _load_or_create_user_task(session: Session, user_id: int, task: Task) -> UserTask:
    """Return the pending/complete row for (user, task), repairing a gap.

    A missing row for an event participant means a join and a task creation
    raced past each other; it is created here.  Non-participants get
    ``NotFoundError``.
    """
    user_task = session.scalar(
        select(UserTask).where(UserTask.user_id == user_id, UserTask.task_id == task.id)
    )
    if user_task is not None:
        return user_task

    if session.get(EventParticipant, (task.event_id, user_id)) is None:
        raise NotFoundError("You have not joined this event")

    user_task = UserTask(
        user_id=user_id, task_id=task.id, event_id=task.event_id, completed=False
    )
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(user_task)
            session.flush()
    except IntegrityError:
        # Another request inserted the same (user, task) row first.
        raise ConsistencyError("Task completion is already being recorded") from None

    logger.warning(
        "Repaired missing ledger row for user %d task %d", user_id, task.id
    )
    return user_task


def complete_task(
    engine: Engine,
    *,
    user_id: int,
    task_id: int,
    proof: Any = None,
    now: datetime | None = None,
) -> CompletionResult:
    """Record that *user_id* completed *task_id* and pay out its points.

    Raises
    ------
    NotFoundError
        Task or user missing, or the user never joined the event.
    MissingConnectionError
        The task's platform needs a linked identity the user lacks.
    AlreadyCompletedError
        The pair is already ``COMPLETED`` (including lost races).
    InactiveEventError
        The event is gone or paused.
    """
    with Session(engine, expire_on_commit=False) as session:
        task = session.get(Task, task_id)
        if task is None:
            raise NotFoundError("Task not found")

        user = session.scalar(
            select(User).where(User.id == user_id).options(selectinload(User.identities))
        )
        if user is None:
            raise NotFoundError("User not found")

        provider = required_provider(task.platform)
        identity: LinkedIdentity | None = None
        if provider is not None:
            identity = user.identity_for(provider)
            if identity is None:
                logger.info(
                    "User %d blocked on task %d: %s account not linked",
                    user_id, task_id, provider.value,
                )
                raise MissingConnectionError(provider.value)

        user_task = _load_or_create_user_task(session, user_id, task)
        if user_task.completed:
            raise AlreadyCompletedError("Task already completed")

        event = session.get(Event, task.event_id)
        if event is None or not event.is_active:
            raise InactiveEventError("Event is no longer active")

        if proof is not None:
            record: VerificationRecord = CallerProof(proof=proof)
        else:
            record = SelfVerification(
                platform=task.platform,
                task_type=task.task_type,
                connected_account=identity.username if identity else None,
            )

        completed_at = now or datetime.now(UTC)
        points = task.points_value

        claimed = session.execute(
            update(UserTask)
            .where(UserTask.id == user_task.id, UserTask.completed.is_(False))
            .values(
                completed=True,
                completed_at=completed_at,
                points_earned=points,
                verification_data=record.to_json(),
            )
        ).rowcount
        if claimed != 1:
            session.rollback()
            raise AlreadyCompletedError("Task already completed")

        session.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_points=User.total_points + points)
        )
        roster_rows = session.execute(
            update(EventParticipant)
            .where(
                EventParticipant.event_id == event.id,
                EventParticipant.user_id == user_id,
            )
            .values(points_earned=EventParticipant.points_earned + points)
        ).rowcount
        if roster_rows != 1:
            logger.warning(
                "User %d completed task %d without a roster entry in event %d",
                user_id, task_id, event.id,
            )

        session.commit()

        result = CompletionResult(
            user_task_id=user_task.id,
            task_id=task.id,
            event_id=event.id,
            points_earned=points,
            completed_at=completed_at,
            verification=record,
        )

    logger.info(
        "User %d completed task %d in event %d (+%d pts, %s)",
        user_id, task_id, result.event_id, points, record.method,
    )
    return result


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _history_query(user_id: int):
    return (
        select(UserTask, Task, Event)
        .join(Task, Task.id == UserTask.task_id)
        .join(Event, Event.id == UserTask.event_id)
        .where(UserTask.user_id == user_id, UserTask.completed.is_(True))
        .order_by(UserTask.completed_at.desc(), UserTask.id.desc())
    )


def _history_entries(session: Session, user_id: int) -> list[HistoryEntry]:
    return [
        HistoryEntry(
            event_id=event.id,
            event_title=event.title,
            task_id=task.id,
            task_type=task.task_type,
            platform=task.platform,
            description=task.description,
            points_earned=user_task.points_earned,
            completed_at=user_task.completed_at,
            verification=verification_from_json(user_task.verification_data),
        )
        for user_task, task, event in session.execute(_history_query(user_id)).all()
    ]


def get_user_task_history(engine: Engine, user_id: int) -> list[HistoryEntry]:
    """Completed tasks for *user_id*, most recent first."""
    with Session(engine) as session:
        return _history_entries(session, user_id)


def get_event_progress(engine: Engine, *, user_id: int, event_id: int) -> EventProgress:
    """Count the user's completed vs. total ledger rows within one event."""
    with Session(engine) as session:
        if session.get(Event, event_id) is None:
            raise NotFoundError("Event not found")
        row = session.execute(
            select(
                func.count(UserTask.id).label("total"),
                func.coalesce(
                    func.sum(case((UserTask.completed.is_(True), 1), else_=0)), 0
                ).label("done"),
                func.coalesce(func.sum(UserTask.points_earned), 0).label("points"),
            ).where(UserTask.user_id == user_id, UserTask.event_id == event_id)
        ).one()
    return EventProgress(
        event_id=event_id,
        completed_count=int(row.done),
        total_count=int(row.total),
        points_earned=int(row.points),
    )


def list_user_tasks_for_event(
    engine: Engine, *, user_id: int, event_id: int
) -> list[UserTask]:
    """The user's ledger rows in one event, each with its task loaded."""
    with Session(engine) as session:
        return list(session.scalars(
            select(UserTask)
            .where(UserTask.user_id == user_id, UserTask.event_id == event_id)
            .options(selectinload(UserTask.task))
            .order_by(UserTask.task_id)
        ).all())


def get_public_profile(engine: Engine, address: str) -> PublicProfile:
    """Look a user up by wallet address, with their completion history."""
    with Session(engine) as session:
        user = session.scalar(
            select(User)
            .where(User.address == address.lower())
            .options(selectinload(User.identities))
        )
        if user is None:
            raise NotFoundError("User not found")
        return PublicProfile(user=user, history=_history_entries(session, user.id))


def audit_event_totals(engine: Engine, event_id: int) -> dict:
    """Check an event's counters against its tasks and ledger rows.

    Read-only.  Returns ``{"event_total": {...}, "participants": [...],
    "consistent": bool}`` where each participant entry lists a stored tally
    that disagrees with the sum of that user's completed rows.
    """
    with Session(engine) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")

        task_sum = session.scalar(
            select(func.coalesce(func.sum(Task.points_value), 0))
            .where(Task.event_id == event_id)
        ) or 0

        earned = dict(session.execute(
            select(UserTask.user_id, func.sum(UserTask.points_earned))
            .where(UserTask.event_id == event_id, UserTask.completed.is_(True))
            .group_by(UserTask.user_id)
        ).all())

        mismatches = []
        for participant in session.scalars(
            select(EventParticipant).where(EventParticipant.event_id == event_id)
        ).all():
            actual = int(earned.get(participant.user_id, 0))
            if participant.points_earned != actual:
                mismatches.append({
                    "user_id": participant.user_id,
                    "stored": participant.points_earned,
                    "actual": actual,
                })

        event_total = {"stored": event.total_points, "actual": int(task_sum)}

    consistent = event_total["stored"] == event_total["actual"] and not mismatches
    if not consistent:
        logger.warning(
            "Ledger drift in event %d: total=%s participants=%s",
            event_id, event_total, mismatches,
        )
    return {
        "event_id": event_id,
        "event_total": event_total,
        "participants": mismatches,
        "consistent": consistent,
    }
