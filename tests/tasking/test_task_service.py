"""TaskService 测试

测试内容：
1. 创建任务与即时系统分派
2. 查询筛选
3. 详情修改、优先级升级、备注
4. 删除权限
5. 批量分派、状态计数、待处理队列
"""

from datetime import timedelta

import pytest

from hotelops.core.exceptions import InvalidRoleError, NotFoundError, ValidationError
from hotelops.core.models import (
    Actor,
    Department,
    EventType,
    Role,
    TaskPriority,
    TaskStatus,
)

STAFF = Actor(id="k-1", role=Role.STAFF)


class TestCreateTask:
    """创建任务"""

    async def test_create_and_auto_assign(self, container, add_staff, manager):
        await add_staff("k-1", Department.KITCHEN)
        queue = await container.event_hub.subscribe()

        task = await container.task_service.create_task(
            manager, "Prep VIP fruit plate", "kitchen", priority="high"
        )

        assert task.department == Department.KITCHEN
        assert task.created_by == "mgr-1"
        assert task.status == TaskStatus.ASSIGNED
        assert task.assigned_to == "k-1"
        assert queue.get_nowait().type == EventType.TASK_CREATED
        assert queue.get_nowait().type == EventType.TASK_ASSIGNED

    async def test_create_without_staff_stays_pending(self, container, manager):
        task = await container.task_service.create_task(manager, "Fix lamp", "Maintenance")
        assert task.status == TaskStatus.PENDING
        assert task.assigned_to is None

    async def test_auto_assign_can_be_skipped(self, container, add_staff, manager):
        await add_staff("k-1")
        task = await container.task_service.create_task(
            manager, "Stock bar", "Kitchen", auto_assign=False
        )
        assert task.status == TaskStatus.PENDING

    async def test_guest_cannot_create(self, container, guest):
        with pytest.raises(InvalidRoleError):
            await container.task_service.create_task(guest, "x", "Kitchen")

    @pytest.mark.parametrize(
        "title,department,priority",
        [
            ("", "Kitchen", "medium"),
            ("Fix", "Spa", "medium"),
            ("Fix", "Kitchen", "critical"),
        ],
    )
    async def test_invalid_input(self, container, manager, title, department, priority):
        with pytest.raises(ValidationError):
            await container.task_service.create_task(
                manager, title, department, priority=priority
            )


class TestQueries:
    """查询"""

    async def test_get_missing(self, container):
        with pytest.raises(NotFoundError):
            await container.task_service.get_task("missing")

    async def test_list_filters(self, container, add_task):
        await add_task(department=Department.KITCHEN)
        await add_task(department=Department.SERVICE, status=TaskStatus.ASSIGNED,
                       assigned_to="s-1")

        kitchen = await container.task_service.list_tasks(department="kitchen")
        assert len(kitchen) == 1
        assigned = await container.task_service.list_tasks(status="assigned")
        assert assigned[0].assigned_to == "s-1"

    async def test_list_invalid_filter(self, container):
        with pytest.raises(ValidationError):
            await container.task_service.list_tasks(status="done")


class TestMaintenance:
    """详情修改、升级与备注"""

    async def test_update_details(self, container, add_task, stores):
        task = await add_task()
        updated = await container.task_service.update_details(
            task.task_id, STAFF, {"title": "Deep clean", "estimated_duration": 45}
        )
        assert updated.title == "Deep clean"
        assert updated.version == task.version + 1

        loaded = await stores.task_store.get_task(task.task_id)
        assert loaded.estimated_duration == 45
        assert loaded.status == TaskStatus.PENDING

    @pytest.mark.parametrize(
        "changes",
        [{"status": "completed"}, {"assigned_to": "k-9"}, {"origin": {}}, {"title": ""}],
    )
    async def test_update_details_rejects(self, container, add_task, changes):
        task = await add_task()
        with pytest.raises(ValidationError):
            await container.task_service.update_details(task.task_id, STAFF, changes)

    async def test_escalate_priority(self, container, add_task):
        task = await add_task()
        escalated = await container.task_service.escalate_priority(task.task_id, STAFF)
        assert escalated.priority == TaskPriority.HIGH

        escalated = await container.task_service.escalate_priority(task.task_id, STAFF)
        assert escalated.priority == TaskPriority.URGENT
        top = await container.task_service.escalate_priority(task.task_id, STAFF)
        assert top.priority == TaskPriority.URGENT
        assert top.version == escalated.version

    async def test_add_note(self, container, add_task, clock):
        task = await add_task()
        updated = await container.task_service.add_note(task.task_id, " bring ladder ", STAFF)
        assert updated.notes[0].content == "bring ladder"
        assert updated.notes[0].added_by == "k-1"
        assert updated.notes[0].added_at == clock.now()


class TestDelete:
    """删除"""

    async def test_manager_can_delete(self, container, add_task, manager, stores):
        task = await add_task()
        queue = await container.event_hub.subscribe(task.task_id)

        await container.task_service.delete_task(task.task_id, manager)

        assert await stores.task_store.get_task(task.task_id) is None
        event = queue.get_nowait()
        assert event.type == EventType.TASK_DELETED
        assert event.payload == {"deleted_by": "mgr-1"}

    async def test_staff_cannot_delete(self, container, add_task, stores):
        task = await add_task()
        with pytest.raises(InvalidRoleError):
            await container.task_service.delete_task(task.task_id, STAFF)
        assert await stores.task_store.get_task(task.task_id) is not None

    async def test_delete_missing(self, container, manager):
        with pytest.raises(NotFoundError):
            await container.task_service.delete_task("missing", manager)


class TestOperationsViews:
    """批量分派与运营视图"""

    async def test_auto_assign_pending_partial(self, container, add_task, add_staff, monkeypatch):
        await add_staff("k-1", Department.KITCHEN)
        ok = await add_task(department=Department.KITCHEN)
        nobody = await add_task(department=Department.MAINTENANCE)
        broken = await add_task(department=Department.KITCHEN)

        original = container.assignment.assign_system

        async def flaky(task_id: str):
            if task_id == broken.task_id:
                raise RuntimeError("boom")
            return await original(task_id)

        monkeypatch.setattr(container.assignment, "assign_system", flaky)
        result = await container.task_service.auto_assign_pending()

        assert result.assigned == [ok.task_id]
        assert result.unassigned == [nobody.task_id]
        assert result.failed == {broken.task_id: "boom"}

    async def test_status_counts_include_zeroes(self, container, add_task):
        await add_task(department=Department.KITCHEN)
        await add_task(department=Department.SERVICE, status=TaskStatus.COMPLETED)

        counts = await container.task_service.status_counts()
        assert counts == {
            "pending": 1,
            "assigned": 0,
            "in_progress": 0,
            "completed": 1,
            "cancelled": 0,
        }
        kitchen = await container.task_service.status_counts("Kitchen")
        assert kitchen["completed"] == 0

    async def test_pending_queue(self, container, add_task):
        oldest = await add_task(age=timedelta(minutes=4, seconds=30))
        await add_task(age=timedelta(minutes=1))
        await add_task(status=TaskStatus.ASSIGNED, assigned_to="k-1")

        queue = await container.task_service.pending_queue()

        assert [v.task.task_id for v in queue][0] == oldest.task_id
        assert len(queue) == 2
        assert queue[0].minutes_pending == 4
        assert queue[0].near_auto_assign is True
        assert queue[1].minutes_pending == 1
        assert queue[1].near_auto_assign is False
