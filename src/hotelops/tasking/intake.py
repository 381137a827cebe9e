"""RequestIntakeBridge -- 住客请求提交入口

1. 校验请求类型、优先级与标题
2. 查找住客当前有效的入住记录（匿名请求同样需要）
3. 持久化 GuestServiceRequest
4. 开关打开时派生关联任务并尝试系统分派

第 4 步失败只记录日志：请求本身始终有效，可以在人工分派队列中继续处理。
"""

import structlog
from ulid import ULID

from hotelops.core.clock import Clock
from hotelops.core.exceptions import PreconditionFailedError, ValidationError
from hotelops.core.models import (
    SYSTEM_ACTOR,
    Actor,
    GuestRequestOrigin,
    GuestServiceRequest,
    RequestType,
    TaskPriority,
)
from hotelops.core.store.protocols import CheckInDirectory, RequestStore

from .config import TaskingConfig
from .mapper import map_request_type_to_dept_category
from .task_service import TaskService

log = structlog.get_logger()


class RequestIntakeBridge:
    """住客请求 -> 任务 桥接"""

    def __init__(
        self,
        request_store: RequestStore,
        check_in_directory: CheckInDirectory,
        task_service: TaskService,
        config: TaskingConfig,
        clock: Clock,
    ) -> None:
        self._requests = request_store
        self._check_ins = check_in_directory
        self._task_service = task_service
        self._config = config
        self._clock = clock

    async def submit(
        self,
        actor: Actor,
        request_type: RequestType | str,
        title: str,
        description: str = "",
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        is_anonymous: bool = False,
        requires_follow_up: bool = False,
    ) -> GuestServiceRequest:
        """提交住客服务请求

        Returns:
            持久化后的请求（包含派生任务分派后的反向同步结果）

        Raises:
            ValidationError: 请求类型/优先级非法或标题为空
            PreconditionFailedError: 没有有效入住记录
        """
        try:
            parsed_type = RequestType(request_type)
        except ValueError:
            raise ValidationError(f"invalid request_type: {request_type!r}") from None
        try:
            parsed_priority = TaskPriority(priority)
        except ValueError:
            raise ValidationError(f"invalid priority: {priority!r}") from None
        if not title or not title.strip():
            raise ValidationError("title must not be empty")

        check_in = await self._check_ins.get_active_for_guest(actor.id)
        if check_in is None:
            raise PreconditionFailedError(f"no active check-in for guest {actor.id}")

        now = self._clock.now()
        request = GuestServiceRequest(
            request_id=str(ULID()),
            created_at=now,
            updated_at=now,
            guest_id=None if is_anonymous else actor.id,
            room_id=check_in.room_id,
            booking_id=check_in.booking_id,
            check_in_id=check_in.check_in_id,
            request_type=parsed_type,
            title=title.strip(),
            description=description,
            priority=parsed_priority,
            is_anonymous=is_anonymous,
            requires_follow_up=requires_follow_up,
        )
        await self._requests.create_request(request)
        log.info(
            "guest_request_submitted",
            request_id=request.request_id,
            request_type=parsed_type,
            room_id=check_in.room_id,
            is_anonymous=is_anonymous,
        )

        if self._config.gsr_to_task_pipeline:
            with structlog.contextvars.bound_contextvars(request_id=request.request_id):
                await self._spawn_task(request)

        stored = await self._requests.get_request(request.request_id)
        return stored or request

    async def _spawn_task(self, request: GuestServiceRequest) -> None:
        """派生关联任务并尝试系统分派，失败只记录日志"""
        mapping = map_request_type_to_dept_category(request.request_type)
        try:
            task = await self._task_service.create_task(
                SYSTEM_ACTOR,
                title=request.title,
                department=mapping.department,
                description=request.description,
                category=mapping.category,
                priority=request.priority,
                origin=GuestRequestOrigin(request_id=request.request_id),
            )
        except Exception as e:
            log.warning(
                "guest_request_task_spawn_failed",
                request_id=request.request_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return

        log.info(
            "guest_request_task_spawned",
            request_id=request.request_id,
            task_id=task.task_id,
            department=task.department,
            assigned_to=task.assigned_to,
        )
