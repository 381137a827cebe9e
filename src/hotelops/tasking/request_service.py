"""RequestService -- 住客服务请求的查询与员工侧维护

请求的创建走 RequestIntakeBridge；这里负责查询、员工手动更新状态、
备注以及住客反馈。状态更新以 (status, version) 做 CAS，与反向同步竞争失败时
抛出 InvalidTransitionError；备注与反馈只写各自的列。
"""

import structlog

from hotelops.core.clock import Clock
from hotelops.core.exceptions import (
    InvalidRoleError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from hotelops.core.models import (
    Actor,
    GuestServiceRequest,
    Note,
    RequestFeedback,
    Role,
    TaskStatus,
)
from hotelops.core.store.protocols import RequestStore

log = structlog.get_logger()

_STAFF_ROLES = {Role.STAFF, Role.MANAGER, Role.ADMIN}


class RequestService:
    """服务请求业务服务"""

    def __init__(self, request_store: RequestStore, clock: Clock) -> None:
        self._requests = request_store
        self._clock = clock

    async def get_request(self, request_id: str) -> GuestServiceRequest:
        request = await self._requests.get_request(request_id)
        if request is None:
            raise NotFoundError("GuestServiceRequest", request_id)
        return request

    async def list_requests(
        self,
        status: TaskStatus | str | None = None,
    ) -> list[GuestServiceRequest]:
        """查询请求列表（员工视角）"""
        if status is None:
            return await self._requests.list_requests()
        try:
            value = TaskStatus(status).value
        except ValueError:
            raise ValidationError(f"invalid status: {status!r}") from None
        return await self._requests.list_requests(status=value)

    async def list_for_guest(self, guest_id: str) -> list[GuestServiceRequest]:
        """住客自己的请求（匿名请求不会出现）"""
        return await self._requests.list_for_guest(guest_id)

    async def update_status(
        self,
        request_id: str,
        status: TaskStatus | str,
        actor: Actor,
        assigned_to: str | None = None,
    ) -> GuestServiceRequest:
        """员工手动更新请求状态

        assigned 时写入负责人（默认操作者本人）与分派时间，
        completed 时写入完成时间。

        Raises:
            InvalidRoleError: 非员工角色
            ValidationError: 状态非法
            NotFoundError: 请求不存在
            InvalidTransitionError: 读取后请求已被其他写入方修改（如反向同步）
        """
        if actor.role not in _STAFF_ROLES:
            raise InvalidRoleError(f"role {actor.role} cannot update request status")
        try:
            target = TaskStatus(status)
        except ValueError:
            raise ValidationError(f"invalid status: {status!r}") from None

        request = await self.get_request(request_id)
        now = self._clock.now()
        updates: dict = {"status": target, "updated_at": now, "version": request.version + 1}
        if target == TaskStatus.ASSIGNED:
            updates["assigned_to"] = assigned_to or actor.id
            updates["assigned_at"] = now
        elif target == TaskStatus.COMPLETED:
            updates["completed_at"] = now

        updated = request.model_copy(update=updates)
        saved = await self._requests.save_request(
            updated,
            expected_status=request.status,
            expected_version=request.version,
        )
        if not saved:
            log.warning(
                "request_status_conflict",
                request_id=request_id,
                from_status=request.status,
                to_status=target,
                actor_id=actor.id,
            )
            raise InvalidTransitionError(
                f"request {request_id} was modified concurrently",
                recoverable=True,
            )

        log.info(
            "request_status_updated",
            request_id=request_id,
            from_status=request.status,
            to_status=target,
            actor_id=actor.id,
        )
        return updated

    async def add_note(self, request_id: str, content: str, actor: Actor) -> GuestServiceRequest:
        """追加请求备注（只写 notes 列，不影响状态）"""
        if not content or not content.strip():
            raise ValidationError("note content must not be empty")

        now = self._clock.now()
        note = Note(content=content.strip(), added_by=actor.id, added_at=now)
        if not await self._requests.append_note(request_id, note, updated_at=now):
            raise NotFoundError("GuestServiceRequest", request_id)
        return await self.get_request(request_id)

    async def submit_feedback(
        self,
        request_id: str,
        actor: Actor,
        rating: int,
        comment: str = "",
    ) -> GuestServiceRequest:
        """住客对已完成请求提交评价

        Raises:
            ValidationError: 评分不在 1-5
            NotFoundError: 请求不存在
            InvalidRoleError: 不是提交该请求的住客
            PreconditionFailedError: 请求尚未完成
        """
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError(f"rating must be between 1 and 5: {rating!r}")

        request = await self.get_request(request_id)
        if actor.role != Role.GUEST or request.guest_id != actor.id:
            raise InvalidRoleError("only the guest who submitted the request can leave feedback")
        if request.status != TaskStatus.COMPLETED:
            raise PreconditionFailedError(
                f"request {request_id} is {request.status}, feedback requires completed"
            )

        now = self._clock.now()
        feedback = RequestFeedback(rating=rating, comment=comment, submitted_at=now)
        if not await self._requests.set_feedback(request_id, feedback, updated_at=now):
            # 读取之后请求被改回非 completed
            raise PreconditionFailedError(
                f"request {request_id} is no longer completed, feedback rejected"
            )
        log.info("request_feedback_submitted", request_id=request_id, rating=rating)
        return await self.get_request(request_id)
