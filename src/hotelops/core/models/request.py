"""GuestServiceRequest Domain Model

住客面向的服务请求。status 由员工手动更新，
或由 ReverseSyncEngine 根据派生任务的聚合状态重算。
每次写入都会递增 version，状态写入以 (status, version) 做 CAS。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .common import Note
from .enums import RequestType, TaskPriority, TaskStatus


class RequestFeedback(BaseModel):
    """住客反馈"""

    rating: int = Field(ge=1, le=5, description="评分 1-5")
    comment: str = Field(default="")
    submitted_at: datetime


class GuestServiceRequest(BaseModel):
    """住客服务请求

    匿名请求仅隐藏 guest_id，入住记录关联（check_in_id）始终存在。
    """

    request_id: str = Field(description="唯一标识，ULID 格式")
    created_at: datetime
    updated_at: datetime
    guest_id: str | None = Field(default=None, description="住客 ID，匿名时为 None")
    room_id: str = Field(description="房间 ID")
    booking_id: str = Field(description="预订 ID")
    check_in_id: str = Field(description="提交时的有效入住记录")
    request_type: RequestType
    title: str
    description: str = Field(default="")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    assigned_to: str | None = None
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    feedback: RequestFeedback | None = None
    notes: list[Note] = Field(default_factory=list)
    is_anonymous: bool = Field(default=False)
    requires_follow_up: bool = Field(default=False)
    version: int = Field(default=1, description="写入版本号，CAS 使用")
