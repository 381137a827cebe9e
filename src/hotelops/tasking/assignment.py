"""AssignmentEngine -- 任务分派

两条路径：
- 人工分派：经理/员工指定负责人，失败直接抛给调用方
- 系统分派：调度器或 intake 触发，从合格员工中按策略选人；
  没有合格员工或认领竞争失败都只是 no-op，任务留在 pending 等待下一轮
"""

from datetime import datetime

import structlog

from hotelops.core.clock import Clock
from hotelops.core.config import SYSTEM_ACTOR_ID
from hotelops.core.exceptions import (
    InvalidRoleError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from hotelops.core.models import (
    Actor,
    AssignmentHistoryEntry,
    AssignmentSource,
    EventType,
    Note,
    Role,
    Task,
    TaskAssignedPayload,
    TaskPriority,
    TaskStatus,
)
from hotelops.core.store.protocols import StaffDirectory, TaskStore

from .event_hub import TaskEventHub
from .reverse_sync import ReverseSyncEngine
from .selection import StaffSelectionStrategy
from .status_guard import StatusTransitionGuard, apply_transition

log = structlog.get_logger()


class AssignmentEngine:
    """任务分派引擎"""

    def __init__(
        self,
        task_store: TaskStore,
        staff_directory: StaffDirectory,
        guard: StatusTransitionGuard,
        selection: StaffSelectionStrategy,
        event_hub: TaskEventHub,
        reverse_sync: ReverseSyncEngine,
        clock: Clock,
    ) -> None:
        self._tasks = task_store
        self._staff = staff_directory
        self._guard = guard
        self._selection = selection
        self._hub = event_hub
        self._reverse_sync = reverse_sync
        self._clock = clock

    async def assign_manual(
        self,
        task_id: str,
        staff_id: str,
        actor: Actor,
        estimated_duration: int | None = None,
        priority: TaskPriority | str | None = None,
        notes: str | None = None,
    ) -> Task:
        """人工分派

        Raises:
            NotFoundError: 任务或员工不存在
            InvalidRoleError: 目标不是 staff 角色
            ValidationError: 优先级或预计耗时非法
            InvalidTransitionError: 状态策略拒绝或并发写入冲突
        """
        overrides: dict = {}
        if priority is not None:
            try:
                overrides["priority"] = TaskPriority(priority)
            except ValueError:
                raise ValidationError(f"invalid priority: {priority!r}") from None
        if estimated_duration is not None:
            if estimated_duration <= 0:
                raise ValidationError("estimated_duration must be positive")
            overrides["estimated_duration"] = estimated_duration

        task = await self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)

        staff = await self._staff.get_staff(staff_id)
        if staff is None:
            raise NotFoundError("Staff", staff_id)
        if staff.role != Role.STAFF:
            raise InvalidRoleError(f"{staff_id} is not a staff member (role={staff.role})")

        now = self._clock.now()
        if task.status != TaskStatus.ASSIGNED:
            self._guard.check_policy(task, TaskStatus.ASSIGNED, now)

        updated = self._build_assignment(
            task,
            staff_id=staff_id,
            assigned_by=actor.id,
            source=AssignmentSource.USER,
            now=now,
            notes=notes,
        )
        if overrides:
            updated = updated.model_copy(update=overrides)

        swapped = await self._tasks.compare_and_swap(
            updated,
            expected_status=task.status,
            expected_version=task.version,
        )
        if not swapped:
            log.warning("manual_assignment_conflict", task_id=task_id, staff_id=staff_id)
            raise InvalidTransitionError(
                f"task {task_id} was modified concurrently",
                recoverable=True,
            )

        log.info(
            "task_assigned",
            task_id=task_id,
            staff_id=staff_id,
            assigned_by=actor.id,
            source=AssignmentSource.USER,
        )
        await self._after_assignment(updated, actor.id, now)
        return updated

    async def assign_system(self, task_id: str) -> Task | None:
        """系统分派

        Returns:
            分派后的任务；任务不再 pending、没有合格员工或认领竞争失败时返回 None
        """
        task = await self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        if task.status != TaskStatus.PENDING or task.assigned_to is not None:
            log.debug("system_assignment_skipped", task_id=task_id, status=task.status)
            return None

        candidates = await self._staff.list_eligible(task.department)
        if not candidates:
            log.info(
                "no_eligible_staff",
                task_id=task_id,
                department=task.department,
            )
            return None

        chosen = await self._selection.select(task, candidates)
        now = self._clock.now()
        updated = self._build_assignment(
            task,
            staff_id=chosen.staff_id,
            assigned_by=SYSTEM_ACTOR_ID,
            source=AssignmentSource.SYSTEM,
            now=now,
        )

        claimed = await self._tasks.compare_and_swap(
            updated,
            expected_status=task.status,
            expected_version=task.version,
            require_unassigned=True,
        )
        if not claimed:
            log.info("system_assignment_claim_lost", task_id=task_id)
            return None

        log.info(
            "task_assigned",
            task_id=task_id,
            staff_id=chosen.staff_id,
            assigned_by=SYSTEM_ACTOR_ID,
            source=AssignmentSource.SYSTEM,
        )
        await self._after_assignment(updated, SYSTEM_ACTOR_ID, now)
        return updated

    @staticmethod
    def _build_assignment(
        task: Task,
        staff_id: str,
        assigned_by: str,
        source: AssignmentSource,
        now: datetime,
        notes: str | None = None,
    ) -> Task:
        """构建分派后的任务：状态流转（如有）+ 分派字段 + 一条分派记录"""
        updated = task
        if task.status != TaskStatus.ASSIGNED:
            updated = apply_transition(task, TaskStatus.ASSIGNED, assigned_by, now)

        entry = AssignmentHistoryEntry(
            assigned_to=staff_id,
            assigned_from=task.assigned_to,
            assigned_by=assigned_by,
            source=source,
            status="assigned",
            notes=notes,
            at=now,
        )
        updates: dict = {
            "assigned_to": staff_id,
            "assigned_by": assigned_by,
            "assigned_at": now,
            "assignment_source": source,
            "updated_at": now,
            "version": task.version + 1,
            "assignment_history": [*task.assignment_history, entry],
        }
        if notes:
            updates["notes"] = [
                *task.notes,
                Note(content=notes, added_by=assigned_by, added_at=now),
            ]
        return updated.model_copy(update=updates)

    async def _after_assignment(self, task: Task, actor_id: str, now: datetime) -> None:
        """提交后的副作用：广播 taskAssigned，关联请求时触发反向同步"""
        await self._hub.publish(
            EventType.TASK_ASSIGNED,
            task_id=task.task_id,
            actor_id=actor_id,
            payload=TaskAssignedPayload(
                assigned_to=task.assigned_to,
                assigned_by=task.assigned_by,
                source=task.assignment_source,
                status=task.status,
            ),
            ts=now,
        )
        if request_id := task.origin_request_id:
            await self._reverse_sync.sync(request_id)
