"""StatusTransitionGuard -- 任务状态流转守卫

所有任务状态变更的唯一入口（分派引擎复用其中的策略校验与字段更新）。
回退（rank 降低）只允许在宽限期内进行；写入以 (status, version) 做 CAS，
竞争失败视为 InvalidTransition，不留下任何历史记录。
"""

from datetime import datetime, timedelta

import structlog

from hotelops.core.clock import Clock
from hotelops.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from hotelops.core.models import (
    Actor,
    EventType,
    StatusHistoryEntry,
    Task,
    TaskStatus,
    TaskUpdatedPayload,
    is_downgrade,
    is_terminal_swap,
)
from hotelops.core.store.protocols import TaskStore

from .config import TaskingConfig
from .event_hub import TaskEventHub
from .reverse_sync import ReverseSyncEngine

log = structlog.get_logger()


def parse_status(value: TaskStatus | str) -> TaskStatus:
    """解析状态取值，非法值抛 ValidationError"""
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationError(f"invalid status: {value!r}") from None


def apply_transition(
    task: Task,
    to_status: TaskStatus,
    actor_id: str,
    now: datetime,
    reason: str = "",
) -> Task:
    """返回应用状态流转后的任务副本（不递增 version，不做策略校验）"""
    entry = StatusHistoryEntry(
        from_status=task.status,
        to_status=to_status,
        changed_by=actor_id,
        changed_at=now,
        reason=reason,
    )
    updates: dict = {
        "status": to_status,
        "last_status_change": now,
        "updated_at": now,
        "status_history": [*task.status_history, entry],
    }
    if to_status == TaskStatus.COMPLETED:
        updates["completed_at"] = now
    if to_status == TaskStatus.IN_PROGRESS and task.accepted_by is None:
        updates["accepted_by"] = actor_id
        updates["accepted_at"] = now
    return task.model_copy(update=updates)


class StatusTransitionGuard:
    """任务状态流转守卫"""

    def __init__(
        self,
        task_store: TaskStore,
        event_hub: TaskEventHub,
        reverse_sync: ReverseSyncEngine,
        config: TaskingConfig,
        clock: Clock,
    ) -> None:
        self._tasks = task_store
        self._hub = event_hub
        self._reverse_sync = reverse_sync
        self._config = config
        self._clock = clock

    def check_policy(self, task: Task, to_status: TaskStatus, now: datetime) -> None:
        """校验流转策略，不允许时抛出 InvalidTransitionError"""
        from_status = task.status

        if is_terminal_swap(from_status, to_status):
            if not self._config.allow_terminal_swap:
                raise InvalidTransitionError(
                    f"terminal swap not allowed: {from_status} -> {to_status}"
                )
            return

        if not is_downgrade(from_status, to_status):
            return

        since = task.last_status_change or task.created_at
        grace = timedelta(seconds=self._config.downgrade_grace_s)
        if now - since > grace:
            raise InvalidTransitionError(
                f"downgrade {from_status} -> {to_status} outside grace window "
                f"({int((now - since).total_seconds())}s > {self._config.downgrade_grace_s}s)"
            )

    async def transition(
        self,
        task_id: str,
        to_status: TaskStatus | str,
        actor: Actor,
        reason: str = "",
    ) -> Task:
        """执行状态流转

        Args:
            task_id: 任务 ID
            to_status: 目标状态
            actor: 操作者
            reason: 流转原因（写入历史）

        Returns:
            流转后的任务

        Raises:
            ValidationError: 目标状态非法
            NotFoundError: 任务不存在
            InvalidTransitionError: 策略拒绝或 CAS 竞争失败
        """
        target = parse_status(to_status)
        task = await self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)

        now = self._clock.now()
        self.check_policy(task, target, now)

        updated = apply_transition(task, target, actor.id, now, reason)
        updated = updated.model_copy(update={"version": task.version + 1})

        swapped = await self._tasks.compare_and_swap(
            updated,
            expected_status=task.status,
            expected_version=task.version,
        )
        if not swapped:
            log.warning(
                "status_transition_conflict",
                task_id=task_id,
                from_status=task.status,
                to_status=target,
                actor_id=actor.id,
            )
            raise InvalidTransitionError(
                f"task {task_id} was modified concurrently",
                recoverable=True,
            )

        log.info(
            "status_transition_applied",
            task_id=task_id,
            from_status=task.status,
            to_status=target,
            actor_id=actor.id,
        )

        await self._hub.publish(
            EventType.TASK_UPDATED,
            task_id=task_id,
            actor_id=actor.id,
            payload=TaskUpdatedPayload(
                status=target,
                from_status=task.status,
                to_status=target,
                changes=["status"],
                reason=reason,
            ),
            ts=now,
        )

        if request_id := updated.origin_request_id:
            with structlog.contextvars.bound_contextvars(task_id=task_id):
                await self._reverse_sync.sync(request_id)

        return updated
