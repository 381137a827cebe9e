"""HandoffEngine -- 任务交接

把已分派任务转交给另一名员工。交接只是分派变更：
追加一条 reassigned 分派记录，任务状态保持不变。
"""

import structlog

from hotelops.core.clock import Clock
from hotelops.core.exceptions import (
    InvalidRoleError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from hotelops.core.models import (
    TERMINAL_STATES,
    Actor,
    AssignmentHistoryEntry,
    AssignmentSource,
    EventType,
    Role,
    Task,
    TaskUpdatedPayload,
)
from hotelops.core.store.protocols import StaffDirectory, TaskStore

from .event_hub import TaskEventHub

log = structlog.get_logger()


class HandoffEngine:
    """任务交接引擎"""

    def __init__(
        self,
        task_store: TaskStore,
        staff_directory: StaffDirectory,
        event_hub: TaskEventHub,
        clock: Clock,
    ) -> None:
        self._tasks = task_store
        self._staff = staff_directory
        self._hub = event_hub
        self._clock = clock

    async def handoff(
        self,
        task_id: str,
        to_staff_id: str,
        actor: Actor,
        reason: str | None = None,
    ) -> Task:
        """把任务交接给另一名员工

        Raises:
            NotFoundError: 任务或员工不存在
            InvalidRoleError: 目标不是 staff 角色
            InvalidTransitionError: 任务未分派、已到终态，或并发写入冲突
            ValidationError: 交接给当前负责人
        """
        task = await self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)

        staff = await self._staff.get_staff(to_staff_id)
        if staff is None:
            raise NotFoundError("Staff", to_staff_id)
        if staff.role != Role.STAFF:
            raise InvalidRoleError(f"{to_staff_id} is not a staff member (role={staff.role})")

        if task.assigned_to is None:
            raise InvalidTransitionError(f"task {task_id} is not assigned")
        if task.status in TERMINAL_STATES:
            raise InvalidTransitionError(f"task {task_id} is already {task.status}")
        if task.assigned_to == to_staff_id:
            raise ValidationError(f"task {task_id} is already assigned to {to_staff_id}")

        now = self._clock.now()
        entry = AssignmentHistoryEntry(
            assigned_to=to_staff_id,
            assigned_from=task.assigned_to,
            assigned_by=actor.id,
            source=AssignmentSource.USER,
            status="reassigned",
            notes=reason,
            at=now,
        )
        updated = task.model_copy(
            update={
                "assigned_to": to_staff_id,
                "updated_at": now,
                "version": task.version + 1,
                "assignment_history": [*task.assignment_history, entry],
            }
        )

        swapped = await self._tasks.compare_and_swap(
            updated,
            expected_status=task.status,
            expected_version=task.version,
        )
        if not swapped:
            log.warning("handoff_conflict", task_id=task_id, to_staff_id=to_staff_id)
            raise InvalidTransitionError(
                f"task {task_id} was modified concurrently",
                recoverable=True,
            )

        log.info(
            "task_handed_off",
            task_id=task_id,
            from_staff_id=task.assigned_to,
            to_staff_id=to_staff_id,
            actor_id=actor.id,
        )
        await self._hub.publish(
            EventType.TASK_UPDATED,
            task_id=task_id,
            actor_id=actor.id,
            payload=TaskUpdatedPayload(
                status=updated.status,
                changes=["assigned_to"],
                reason=reason or "",
            ),
            ts=now,
        )
        return updated
