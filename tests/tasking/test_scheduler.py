"""AutoAssignmentScheduler 测试"""

import asyncio
from datetime import timedelta

import structlog

from hotelops.core.models import Department, TaskStatus
from hotelops.tasking.scheduler import AutoAssignmentScheduler


class TestTick:
    """单轮扫描"""

    async def test_partial_staffing(self, container, add_task, add_staff, stores):
        """10 个滞留任务，仅 Kitchen 有员工 -> 6 个分派、4 个留在 pending"""
        await add_staff("k-1", Department.KITCHEN)
        await add_staff("k-2", Department.KITCHEN)
        for _ in range(6):
            await add_task(department=Department.KITCHEN, age=timedelta(minutes=6))
        for _ in range(4):
            await add_task(department=Department.MAINTENANCE, age=timedelta(minutes=6))

        summary = await container.scheduler.tick()

        assert summary.examined == 10
        assert summary.assigned == 6
        assert summary.unassigned == 4
        assert summary.failed == 0

        counts = await stores.task_store.count_by_status()
        assert counts == {"assigned": 6, "pending": 4}
        pending = await stores.task_store.list_tasks(status="pending")
        assert {t.department for t in pending} == {Department.MAINTENANCE}

    async def test_fresh_tasks_not_swept(self, container, add_task, add_staff):
        await add_staff("k-1")
        await add_task(age=timedelta(minutes=4))

        summary = await container.scheduler.tick()
        assert summary.examined == 0

    async def test_tasks_become_stale_as_time_passes(self, container, add_task, add_staff, clock):
        await add_staff("k-1")
        task = await add_task()

        assert (await container.scheduler.tick()).assigned == 0
        clock.advance(minutes=5)
        assert (await container.scheduler.tick()).assigned == 1

        loaded = await container.task_service.get_task(task.task_id)
        assert loaded.status == TaskStatus.ASSIGNED

    async def test_per_task_failure_does_not_stop_batch(
        self, container, add_task, add_staff, monkeypatch
    ):
        await add_staff("k-1")
        broken = await add_task(age=timedelta(minutes=10))
        await add_task(age=timedelta(minutes=9))

        original = container.assignment.assign_system

        async def flaky(task_id: str):
            if task_id == broken.task_id:
                raise RuntimeError("directory unavailable")
            return await original(task_id)

        monkeypatch.setattr(container.assignment, "assign_system", flaky)
        summary = await container.scheduler.tick()

        assert summary.examined == 2
        assert summary.failed == 1
        assert summary.assigned == 1

    async def test_task_id_bound_while_assigning(self, container, add_task, monkeypatch):
        """分派期间日志上下文带有当前 task_id，结束后解除"""
        task = await add_task(age=timedelta(minutes=6))
        seen: list[dict] = []

        async def record(task_id: str):
            seen.append(structlog.contextvars.get_contextvars())
            return None

        monkeypatch.setattr(container.assignment, "assign_system", record)
        await container.scheduler.tick()

        assert seen == [{"task_id": task.task_id}]
        assert "task_id" not in structlog.contextvars.get_contextvars()


class TestLoop:
    """调度循环"""

    async def test_run_forever_until_stopped(self, build_container, clock):
        container = build_container(scheduler_interval_s=30)
        sleeps: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            await asyncio.sleep(0)

        scheduler = AutoAssignmentScheduler(
            container.stores.task_store,
            container.assignment,
            container.config,
            clock,
            sleep=fake_sleep,
        )
        runner = scheduler.start()
        assert scheduler.running is True

        for _ in range(500):
            if len(sleeps) >= 3:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert runner.done()
        assert sleeps[:3] == [30, 30, 30]
        assert scheduler.running is False

    async def test_stop_without_start(self, container):
        await container.scheduler.stop()
        assert container.scheduler.running is False
