"""
tests/test_event_service.py — Event Registry
=============================================
Creation rules, creator-only updates, the deletion cascade and joining with
task fan-out.  Uses the in-memory SQLite engine from conftest.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import future, make_user
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from eventquest.database.models import Event, EventParticipant, Task, UserTask
from eventquest.engine.patches import EventPatch
from eventquest.errors import (
    AlreadyJoinedError,
    AuthorizationError,
    InactiveEventError,
    NotFoundError,
    ValidationError,
)
from eventquest.services import event_service, task_service


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def organizer(engine) -> int:
    return make_user(engine, "0x" + "1" * 40)


@pytest.fixture
def participant(engine) -> int:
    return make_user(engine, "0x" + "2" * 40, verified=False)


def _event(engine, creator_id: int, **kw) -> Event:
    params = {"title": "Launch", "description": "Launch week", "end_date": future()}
    params.update(kw)
    return event_service.create_event(engine, creator_id=creator_id, **params)


def _count(engine, model, *where) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model).where(*where))


# ===========================================================================
# create_event
# ===========================================================================
class TestCreateEvent:
    def test_defaults(self, engine, organizer):
        event = _event(engine, organizer)
        assert event.is_active is True
        assert event.total_points == 0
        assert event.creator_id == organizer
        assert [e.id for e in event_service.list_created_events(engine, organizer)] == [event.id]

    @pytest.mark.parametrize("field", ["title", "description"])
    def test_missing_text_field(self, engine, organizer, field):
        with pytest.raises(ValidationError):
            _event(engine, organizer, **{field: "  "})

    def test_missing_end_date(self, engine, organizer):
        with pytest.raises(ValidationError):
            _event(engine, organizer, end_date=None)

    def test_end_before_start(self, engine, organizer):
        start = datetime(2026, 6, 1, tzinfo=UTC)
        with pytest.raises(ValidationError, match="End date"):
            _event(engine, organizer, start_date=start, end_date=start - timedelta(days=1))

    def test_unverified_creator_rejected(self, engine, participant):
        with pytest.raises(AuthorizationError):
            _event(engine, participant)

    def test_unverified_creator_allowed_when_not_required(self, engine, participant):
        event = _event(engine, participant, require_verified=False)
        assert event.creator_id == participant

    def test_unknown_creator(self, engine):
        with pytest.raises(NotFoundError):
            _event(engine, 404)


# ===========================================================================
# update_event
# ===========================================================================
class TestUpdateEvent:
    def test_only_present_fields_change(self, engine, organizer):
        event = _event(engine, organizer)
        updated = event_service.update_event(
            engine, event.id, caller_id=organizer, patch=EventPatch(title="Renamed")
        )
        assert updated.title == "Renamed"
        assert updated.description == "Launch week"

    def test_pause(self, engine, organizer):
        event = _event(engine, organizer)
        updated = event_service.update_event(
            engine, event.id, caller_id=organizer, patch=EventPatch(is_active=False)
        )
        assert updated.is_active is False

    def test_non_creator(self, engine, organizer, participant):
        event = _event(engine, organizer)
        with pytest.raises(AuthorizationError):
            event_service.update_event(
                engine, event.id, caller_id=participant, patch=EventPatch(title="x")
            )

    def test_empty_patch(self, engine, organizer):
        event = _event(engine, organizer)
        with pytest.raises(ValidationError):
            event_service.update_event(engine, event.id, caller_id=organizer, patch=EventPatch())

    def test_missing_event(self, engine, organizer):
        with pytest.raises(NotFoundError):
            event_service.update_event(
                engine, 999, caller_id=organizer, patch=EventPatch(title="x")
            )


# ===========================================================================
# join_event
# ===========================================================================
class TestJoinEvent:
    def test_fan_out_one_row_per_task(self, engine, organizer, participant):
        event = _event(engine, organizer)
        for n in range(3):
            task_service.create_task(
                engine, event.id, caller_id=organizer, task_type="visit",
                platform="website", link_url=f"https://site{n}.test", points_value=5,
            )

        event_service.join_event(engine, event.id, user_id=participant)

        assert _count(
            engine, UserTask,
            UserTask.user_id == participant, UserTask.completed.is_(False),
        ) == 3
        with Session(engine) as session:
            row = session.get(EventParticipant, (event.id, participant))
            assert row.points_earned == 0
        joined = event_service.list_joined_events(engine, participant)
        assert [e.id for e in joined] == [event.id]

    def test_twice(self, engine, organizer, participant):
        event = _event(engine, organizer)
        event_service.join_event(engine, event.id, user_id=participant)
        with pytest.raises(AlreadyJoinedError):
            event_service.join_event(engine, event.id, user_id=participant)
        assert _count(engine, EventParticipant, EventParticipant.event_id == event.id) == 1

    def test_inactive(self, engine, organizer, participant):
        event = _event(engine, organizer)
        event_service.update_event(
            engine, event.id, caller_id=organizer, patch=EventPatch(is_active=False)
        )
        with pytest.raises(InactiveEventError):
            event_service.join_event(engine, event.id, user_id=participant)

    def test_missing_event_or_user(self, engine, organizer):
        event = _event(engine, organizer)
        with pytest.raises(NotFoundError):
            event_service.join_event(engine, 999, user_id=organizer)
        with pytest.raises(NotFoundError):
            event_service.join_event(engine, event.id, user_id=999)


# ===========================================================================
# delete_event
# ===========================================================================
class TestDeleteEvent:
    def test_cascade(self, engine, organizer, participant):
        event = _event(engine, organizer)
        task_service.create_task(
            engine, event.id, caller_id=organizer, task_type="visit",
            platform="website", link_url="https://a.test", points_value=10,
        )
        event_service.join_event(engine, event.id, user_id=participant)

        event_service.delete_event(engine, event.id, caller_id=organizer)

        assert _count(engine, Event, Event.id == event.id) == 0
        assert _count(engine, Task, Task.event_id == event.id) == 0
        assert _count(engine, UserTask, UserTask.event_id == event.id) == 0
        assert _count(engine, EventParticipant, EventParticipant.event_id == event.id) == 0
        assert event_service.list_joined_events(engine, participant) == []
        assert event_service.list_created_events(engine, organizer) == []

    def test_non_creator(self, engine, organizer, participant):
        event = _event(engine, organizer)
        with pytest.raises(AuthorizationError):
            event_service.delete_event(engine, event.id, caller_id=participant)
        assert event_service.get_event(engine, event.id).is_active is True


# ===========================================================================
# Reads
# ===========================================================================
class TestReads:
    def test_pagination(self, engine, organizer):
        ids = [_event(engine, organizer, title=f"E{n}").id for n in range(5)]
        page = event_service.list_events(engine, page=2, limit=2)
        assert page.total == 5
        assert page.total_pages == 3
        assert page.current_page == 2
        # newest first
        assert [e.id for e in page.events] == [ids[2], ids[1]]

    def test_get_event_loads_roster_and_tasks(self, engine, organizer, participant):
        event = _event(engine, organizer)
        task_service.create_task(
            engine, event.id, caller_id=organizer, task_type="visit",
            platform="website", link_url="https://a.test", points_value=1,
        )
        event_service.join_event(engine, event.id, user_id=participant)

        loaded = event_service.get_event(engine, event.id)
        assert loaded.creator.id == organizer
        assert [p.user_id for p in loaded.participants] == [participant]
        assert len(loaded.tasks) == 1

    def test_get_missing(self, engine):
        with pytest.raises(NotFoundError):
            event_service.get_event(engine, 1)
