"""HandoffEngine 测试"""

import pytest

from hotelops.core.exceptions import (
    InvalidRoleError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from hotelops.core.models import Actor, AssignmentSource, EventType, Role, TaskStatus

STAFF = Actor(id="k-1", role=Role.STAFF)


class TestHandoff:
    async def test_appends_one_entry_and_keeps_status(self, container, add_task, add_staff, stores):
        await add_staff("k-1")
        await add_staff("k-2")
        task = await add_task(status=TaskStatus.IN_PROGRESS, assigned_to="k-1")

        updated = await container.handoff.handoff(
            task.task_id, "k-2", STAFF, reason="shift ended"
        )

        assert updated.assigned_to == "k-2"
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.status_history == []
        assert len(updated.assignment_history) == 1
        entry = updated.assignment_history[0]
        assert entry.assigned_from == "k-1"
        assert entry.assigned_by == "k-1"
        assert entry.source == AssignmentSource.USER
        assert entry.status == "reassigned"
        assert entry.notes == "shift ended"

        loaded = await stores.task_store.get_task(task.task_id)
        assert loaded.assigned_to == "k-2"
        assert loaded.version == task.version + 1
        assert loaded.assignment_history == updated.assignment_history

    async def test_emits_task_updated(self, container, add_task, add_staff):
        await add_staff("k-2")
        task = await add_task(status=TaskStatus.ASSIGNED, assigned_to="k-1")
        queue = await container.event_hub.subscribe(task.task_id)

        await container.handoff.handoff(task.task_id, "k-2", STAFF)

        event = queue.get_nowait()
        assert event.type == EventType.TASK_UPDATED
        assert event.payload["changes"] == ["assigned_to"]
        assert event.payload["status"] == "assigned"

    async def test_unassigned_task_rejected(self, container, add_task, add_staff):
        await add_staff("k-2")
        task = await add_task()
        with pytest.raises(InvalidTransitionError):
            await container.handoff.handoff(task.task_id, "k-2", STAFF)

    async def test_terminal_task_rejected(self, container, add_task, add_staff):
        await add_staff("k-2")
        task = await add_task(status=TaskStatus.COMPLETED, assigned_to="k-1")
        with pytest.raises(InvalidTransitionError):
            await container.handoff.handoff(task.task_id, "k-2", STAFF)

    async def test_same_assignee_rejected(self, container, add_task, add_staff):
        await add_staff("k-1")
        task = await add_task(status=TaskStatus.ASSIGNED, assigned_to="k-1")
        with pytest.raises(ValidationError):
            await container.handoff.handoff(task.task_id, "k-1", STAFF)

    async def test_non_staff_target(self, container, add_task, add_staff):
        await add_staff("boss", role=Role.ADMIN)
        task = await add_task(status=TaskStatus.ASSIGNED, assigned_to="k-1")
        with pytest.raises(InvalidRoleError):
            await container.handoff.handoff(task.task_id, "boss", STAFF)

    async def test_missing_entities(self, container, add_task, add_staff):
        await add_staff("k-2")
        with pytest.raises(NotFoundError):
            await container.handoff.handoff("missing", "k-2", STAFF)

        task = await add_task(status=TaskStatus.ASSIGNED, assigned_to="k-1")
        with pytest.raises(NotFoundError):
            await container.handoff.handoff(task.task_id, "ghost", STAFF)
