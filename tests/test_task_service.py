"""
tests/test_task_service.py — Task Catalog
==========================================
Validation, ownership, event-total bookkeeping and participant fan-out.
"""

from __future__ import annotations

import pytest
from conftest import future, make_user
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from eventquest.database.models import Event, Task, UserTask
from eventquest.engine.patches import TaskPatch
from eventquest.errors import AuthorizationError, NotFoundError, ValidationError
from eventquest.services import event_service, ledger_service, task_service


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def organizer(engine) -> int:
    return make_user(engine, "0x" + "1" * 40)


@pytest.fixture
def event_id(engine, organizer) -> int:
    event = event_service.create_event(
        engine, creator_id=organizer, title="Quest", description="Do things",
        end_date=future(),
    )
    return event.id


def _add(engine, event_id, caller_id, **kw) -> Task:
    params = {
        "task_type": "visit",
        "platform": "website",
        "link_url": "https://example.com",
        "points_value": 10,
    }
    params.update(kw)
    return task_service.create_task(engine, event_id, caller_id=caller_id, **params)


def _event_total(engine, event_id) -> int:
    with Session(engine) as session:
        return session.get(Event, event_id).total_points


def _task_sum(engine, event_id) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.coalesce(func.sum(Task.points_value), 0))
            .where(Task.event_id == event_id)
        )


# ===========================================================================
# create_task
# ===========================================================================
class TestCreateTask:
    def test_bumps_total_and_synthesizes_description(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer, points_value=15)
        assert task.description == "Visit example.com"
        assert task.creator_id == organizer
        assert _event_total(engine, event_id) == 15

    def test_keeps_given_description(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer, description="Read our blog")
        assert task.description == "Read our blog"

    @pytest.mark.parametrize("points", [0, -5])
    def test_rejects_non_positive_points(self, engine, organizer, event_id, points):
        with pytest.raises(ValidationError):
            _add(engine, event_id, organizer, points_value=points)
        assert _event_total(engine, event_id) == 0

    def test_rejects_missing_link(self, engine, organizer, event_id):
        with pytest.raises(ValidationError):
            _add(engine, event_id, organizer, link_url="")

    def test_rejects_type_not_offered_by_platform(self, engine, organizer, event_id):
        with pytest.raises(ValidationError, match="not offered"):
            _add(engine, event_id, organizer, platform="discord", task_type="subscribe")

    def test_rejects_unknown_platform(self, engine, organizer, event_id):
        with pytest.raises(ValidationError, match="Unsupported platform"):
            _add(engine, event_id, organizer, platform="myspace")

    def test_non_creator(self, engine, event_id):
        stranger = make_user(engine, "0x" + "9" * 40)
        with pytest.raises(AuthorizationError):
            _add(engine, event_id, stranger)

    def test_missing_event(self, engine, organizer):
        with pytest.raises(NotFoundError):
            _add(engine, 999, organizer)

    def test_fans_out_to_existing_participants(self, engine, organizer, event_id):
        users = [make_user(engine, f"0x{n:040x}") for n in range(1, 4)]
        for uid in users:
            event_service.join_event(engine, event_id, user_id=uid)

        task = _add(engine, event_id, organizer)

        with Session(engine) as session:
            rows = session.scalars(select(UserTask).where(UserTask.task_id == task.id)).all()
        assert sorted(r.user_id for r in rows) == sorted(users)
        assert all(not r.completed for r in rows)

    def test_other_platform_keeps_custom_name(self, engine, organizer, event_id):
        task = _add(
            engine, event_id, organizer,
            platform="other", task_type="custom", custom_platform="Farcaster",
        )
        assert task.custom_platform == "Farcaster"
        assert task.description == "Complete the custom task on Farcaster"


# ===========================================================================
# update_task / delete_task
# ===========================================================================
class TestUpdateTask:
    def test_points_delta_moves_event_total(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer, points_value=10)
        _add(engine, event_id, organizer, points_value=5)

        task_service.update_task(
            engine, task.id, caller_id=organizer, patch=TaskPatch(points_value=25)
        )
        assert _event_total(engine, event_id) == 30
        assert _event_total(engine, event_id) == _task_sum(engine, event_id)

    def test_completed_rows_keep_paid_points(self, engine, organizer, event_id):
        player = make_user(engine, "0x" + "5" * 40)
        task = _add(engine, event_id, organizer, points_value=10)
        event_service.join_event(engine, event_id, user_id=player)
        ledger_service.complete_task(engine, user_id=player, task_id=task.id)

        task_service.update_task(
            engine, task.id, caller_id=organizer, patch=TaskPatch(points_value=50)
        )

        history = ledger_service.get_user_task_history(engine, player)
        assert history[0].points_earned == 10

    def test_description_only(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer)
        updated = task_service.update_task(
            engine, task.id, caller_id=organizer, patch=TaskPatch(description="New text")
        )
        assert updated.description == "New text"
        assert updated.points_value == 10
        assert _event_total(engine, event_id) == 10

    def test_invalid_points(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer)
        with pytest.raises(ValidationError):
            task_service.update_task(
                engine, task.id, caller_id=organizer, patch=TaskPatch(points_value=0)
            )

    def test_combo_checked_against_current_values(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer)
        with pytest.raises(ValidationError):
            task_service.update_task(
                engine, task.id, caller_id=organizer, patch=TaskPatch(platform="twitter")
            )

    def test_non_creator(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer)
        stranger = make_user(engine, "0x" + "9" * 40)
        with pytest.raises(AuthorizationError):
            task_service.update_task(
                engine, task.id, caller_id=stranger, patch=TaskPatch(description="x")
            )


class TestDeleteTask:
    def test_removes_rows_and_points(self, engine, organizer, event_id):
        player = make_user(engine, "0x" + "5" * 40)
        keep = _add(engine, event_id, organizer, points_value=20)
        drop = _add(engine, event_id, organizer, points_value=10)
        event_service.join_event(engine, event_id, user_id=player)
        assert _event_total(engine, event_id) == 30

        task_service.delete_task(engine, drop.id, caller_id=organizer)

        assert _event_total(engine, event_id) == 20
        with Session(engine) as session:
            assert session.scalar(
                select(func.count()).select_from(UserTask).where(UserTask.task_id == drop.id)
            ) == 0
        assert [t.id for t in task_service.list_event_tasks(engine, event_id)] == [keep.id]
        with pytest.raises(NotFoundError):
            ledger_service.complete_task(engine, user_id=player, task_id=drop.id)

    def test_non_creator(self, engine, organizer, event_id):
        task = _add(engine, event_id, organizer)
        stranger = make_user(engine, "0x" + "9" * 40)
        with pytest.raises(AuthorizationError):
            task_service.delete_task(engine, task.id, caller_id=stranger)

    def test_missing(self, engine, organizer):
        with pytest.raises(NotFoundError):
            task_service.delete_task(engine, 404, caller_id=organizer)
