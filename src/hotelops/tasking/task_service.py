"""TaskService -- 任务创建/查询/维护业务逻辑

状态流转、分派与交接分别由 StatusTransitionGuard、AssignmentEngine、
HandoffEngine 负责；这里的详情修改不允许触碰状态和分派字段。
所有写入都以 (status, version) 做 CAS，冲突时抛 InvalidTransitionError。
"""

from datetime import datetime

import structlog
from pydantic import BaseModel, Field
from ulid import ULID

from hotelops.core.clock import Clock
from hotelops.core.config import NEAR_AUTO_ASSIGN_LEAD_S
from hotelops.core.exceptions import (
    InvalidRoleError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from hotelops.core.models import (
    PRIORITY_ESCALATION,
    Actor,
    Department,
    DirectOrigin,
    EventType,
    Note,
    Role,
    Task,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskOrigin,
    TaskPriority,
    TaskStatus,
    TaskUpdatedPayload,
)
from hotelops.core.store.protocols import TaskStore

from .assignment import AssignmentEngine
from .config import TaskingConfig
from .event_hub import TaskEventHub
from .mapper import get_canonical_department

log = structlog.get_logger()

# 详情修改允许的字段
_EDITABLE_FIELDS = {"title", "description", "category", "estimated_duration"}

# 只能通过状态守卫 / 分派引擎修改的字段
_PROTECTED_FIELDS = {
    "status",
    "assigned_to",
    "assigned_by",
    "assigned_at",
    "assignment_source",
    "accepted_by",
    "accepted_at",
    "completed_at",
    "last_status_change",
    "status_history",
    "assignment_history",
    "version",
}

_CREATOR_ROLES = {Role.STAFF, Role.MANAGER, Role.ADMIN, Role.SYSTEM}
_DELETER_ROLES = {Role.MANAGER, Role.ADMIN}


class PendingTaskView(BaseModel):
    """待处理队列条目"""

    task: Task
    minutes_pending: int = Field(description="已等待分钟数（向下取整）")
    near_auto_assign: bool = Field(description="即将被调度器自动分派")


class BulkAssignResult(BaseModel):
    """批量自动分派结果"""

    assigned: list[str] = Field(default_factory=list)
    unassigned: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="task_id -> 错误信息")


class TaskService:
    """任务业务服务"""

    def __init__(
        self,
        task_store: TaskStore,
        assignment_engine: AssignmentEngine,
        event_hub: TaskEventHub,
        config: TaskingConfig,
        clock: Clock,
    ) -> None:
        self._tasks = task_store
        self._assignment = assignment_engine
        self._hub = event_hub
        self._config = config
        self._clock = clock

    async def create_task(
        self,
        actor: Actor,
        title: str,
        department: Department | str,
        description: str = "",
        category: str = "general",
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        estimated_duration: int | None = None,
        origin: TaskOrigin | None = None,
        auto_assign: bool = True,
    ) -> Task:
        """创建任务

        创建后立即尝试一次系统分派；分派失败不影响创建结果，
        任务留在 pending 由调度器或人工分派兜底。

        Raises:
            InvalidRoleError: 住客不能直接创建任务
            ValidationError: 标题为空、部门/优先级非法
        """
        if actor.role not in _CREATOR_ROLES:
            raise InvalidRoleError(f"role {actor.role} cannot create tasks")
        if not title or not title.strip():
            raise ValidationError("title must not be empty")

        canonical = get_canonical_department(department)
        if canonical is None:
            raise ValidationError(f"invalid department: {department!r}")
        try:
            parsed_priority = TaskPriority(priority)
        except ValueError:
            raise ValidationError(f"invalid priority: {priority!r}") from None

        now = self._clock.now()
        task = Task(
            task_id=str(ULID()),
            created_at=now,
            updated_at=now,
            title=title.strip(),
            description=description,
            department=canonical,
            category=category or "general",
            priority=parsed_priority,
            created_by=actor.id,
            estimated_duration=estimated_duration,
            origin=origin or DirectOrigin(),
        )
        await self._tasks.create_task(task)
        log.info(
            "task_created",
            task_id=task.task_id,
            department=task.department,
            category=task.category,
            origin_request_id=task.origin_request_id,
        )

        await self._hub.publish(
            EventType.TASK_CREATED,
            task_id=task.task_id,
            actor_id=actor.id,
            payload=TaskCreatedPayload(
                title=task.title,
                department=task.department,
                category=task.category,
                priority=task.priority,
                origin_request_id=task.origin_request_id,
            ),
            ts=now,
        )

        if not auto_assign:
            return task

        try:
            assigned = await self._assignment.assign_system(task.task_id)
        except Exception as e:
            log.warning(
                "initial_auto_assign_failed",
                task_id=task.task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return task
        return assigned or task

    async def get_task(self, task_id: str) -> Task:
        task = await self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def list_tasks(
        self,
        status: TaskStatus | str | None = None,
        department: Department | str | None = None,
        priority: TaskPriority | str | None = None,
        assigned_to: str | None = None,
    ) -> list[Task]:
        """按条件查询任务，筛选值非法时抛 ValidationError"""
        status_value = None
        if status is not None:
            try:
                status_value = TaskStatus(status).value
            except ValueError:
                raise ValidationError(f"invalid status: {status!r}") from None

        department_value = None
        if department is not None:
            canonical = get_canonical_department(department)
            if canonical is None:
                raise ValidationError(f"invalid department: {department!r}")
            department_value = canonical.value

        priority_value = None
        if priority is not None:
            try:
                priority_value = TaskPriority(priority).value
            except ValueError:
                raise ValidationError(f"invalid priority: {priority!r}") from None

        return await self._tasks.list_tasks(
            status=status_value,
            department=department_value,
            priority=priority_value,
            assigned_to=assigned_to,
        )

    async def update_details(self, task_id: str, actor: Actor, changes: dict) -> Task:
        """修改任务详情（标题、描述、分类、预计耗时）

        Raises:
            ValidationError: 试图修改状态/分派字段，或包含未知字段
        """
        protected = sorted(set(changes) & _PROTECTED_FIELDS)
        if protected:
            raise ValidationError(
                f"fields can only change through status/assignment operations: {protected}"
            )
        unknown = sorted(set(changes) - _EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"unknown or read-only fields: {unknown}")
        if "title" in changes and not str(changes["title"] or "").strip():
            raise ValidationError("title must not be empty")

        task = await self.get_task(task_id)
        now = self._clock.now()
        updated = task.model_copy(update={**changes, "updated_at": now})
        updated = await self._save(task, updated)

        await self._publish_updated(updated, actor, sorted(changes), now)
        return updated

    async def escalate_priority(self, task_id: str, actor: Actor) -> Task:
        """优先级升一级，urgent 保持不变"""
        task = await self.get_task(task_id)
        next_priority = PRIORITY_ESCALATION[task.priority]
        if next_priority == task.priority:
            return task

        now = self._clock.now()
        updated = task.model_copy(update={"priority": next_priority, "updated_at": now})
        updated = await self._save(task, updated)
        log.info(
            "task_priority_escalated",
            task_id=task_id,
            from_priority=task.priority,
            to_priority=next_priority,
        )

        await self._publish_updated(updated, actor, ["priority"], now)
        return updated

    async def add_note(self, task_id: str, content: str, actor: Actor) -> Task:
        """追加任务备注"""
        if not content or not content.strip():
            raise ValidationError("note content must not be empty")

        task = await self.get_task(task_id)
        now = self._clock.now()
        note = Note(content=content.strip(), added_by=actor.id, added_at=now)
        updated = task.model_copy(update={"notes": [*task.notes, note], "updated_at": now})
        updated = await self._save(task, updated)

        await self._publish_updated(updated, actor, ["notes"], now)
        return updated

    async def delete_task(self, task_id: str, actor: Actor) -> None:
        """硬删除任务（仅经理/管理员）"""
        if actor.role not in _DELETER_ROLES:
            raise InvalidRoleError(f"role {actor.role} cannot delete tasks")

        deleted = await self._tasks.delete_task(task_id)
        if not deleted:
            raise NotFoundError("Task", task_id)
        log.info("task_deleted", task_id=task_id, actor_id=actor.id)

        await self._hub.publish(
            EventType.TASK_DELETED,
            task_id=task_id,
            actor_id=actor.id,
            payload=TaskDeletedPayload(deleted_by=actor.id),
            ts=self._clock.now(),
        )

    async def auto_assign_pending(self) -> BulkAssignResult:
        """对所有未分派的 pending 任务立即尝试系统分派（不看滞留阈值）"""
        result = BulkAssignResult()
        pending = await self._tasks.list_tasks(status=TaskStatus.PENDING.value)
        for task in pending:
            if task.assigned_to is not None or not task.is_active:
                continue
            try:
                assigned = await self._assignment.assign_system(task.task_id)
            except Exception as e:
                result.failed[task.task_id] = str(e)
                log.warning(
                    "bulk_auto_assign_failed",
                    task_id=task.task_id,
                    error_type=type(e).__name__,
                )
                continue
            if assigned is None:
                result.unassigned.append(task.task_id)
            else:
                result.assigned.append(task.task_id)

        log.info(
            "bulk_auto_assign_completed",
            assigned=len(result.assigned),
            unassigned=len(result.unassigned),
            failed=len(result.failed),
        )
        return result

    async def status_counts(self, department: Department | str | None = None) -> dict[str, int]:
        """各状态任务数（未出现的状态计 0）"""
        canonical = None
        if department is not None:
            canonical = get_canonical_department(department)
            if canonical is None:
                raise ValidationError(f"invalid department: {department!r}")
        counts = await self._tasks.count_by_status(canonical)
        return {status.value: counts.get(status.value, 0) for status in TaskStatus}

    async def pending_queue(
        self,
        department: Department | str | None = None,
    ) -> list[PendingTaskView]:
        """人工分派队列：未分派的 pending 任务，等待最久的在前"""
        tasks = await self.list_tasks(status=TaskStatus.PENDING, department=department)
        now = self._clock.now()
        near_threshold = max(self._config.stale_after_s - NEAR_AUTO_ASSIGN_LEAD_S, 0)

        views = []
        for task in sorted(tasks, key=lambda t: t.created_at):
            if task.assigned_to is not None:
                continue
            waited = (now - task.created_at).total_seconds()
            views.append(
                PendingTaskView(
                    task=task,
                    minutes_pending=int(waited // 60),
                    near_auto_assign=waited >= near_threshold,
                )
            )
        return views

    async def _save(self, task: Task, updated: Task) -> Task:
        """以读取时的 (status, version) 做 CAS 写入"""
        updated = updated.model_copy(update={"version": task.version + 1})
        swapped = await self._tasks.compare_and_swap(
            updated,
            expected_status=task.status,
            expected_version=task.version,
        )
        if not swapped:
            log.warning("task_update_conflict", task_id=task.task_id)
            raise InvalidTransitionError(
                f"task {task.task_id} was modified concurrently",
                recoverable=True,
            )
        return updated

    async def _publish_updated(
        self,
        task: Task,
        actor: Actor,
        changes: list[str],
        now: datetime,
    ) -> None:
        await self._hub.publish(
            EventType.TASK_UPDATED,
            task_id=task.task_id,
            actor_id=actor.id,
            payload=TaskUpdatedPayload(status=task.status, changes=changes),
            ts=now,
        )
