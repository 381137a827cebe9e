"""Task Domain Model

status_history / assignment_history 为内嵌的 append-only 日志，
任何被接受的状态流转或分派变更都恰好追加一条记录。
version 为写入计数器，所有状态/分派写入都以 (status, version) 做 CAS。
"""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from .common import Attachment, Note
from .enums import AssignmentSource, Department, TaskPriority, TaskStatus


class DirectOrigin(BaseModel):
    """员工/经理直接创建的任务"""

    kind: Literal["direct"] = "direct"


class GuestRequestOrigin(BaseModel):
    """由住客服务请求派生的任务"""

    kind: Literal["guest_request"] = "guest_request"
    request_id: str = Field(description="来源 GuestServiceRequest ID")


TaskOrigin = Annotated[
    DirectOrigin | GuestRequestOrigin,
    Field(discriminator="kind"),
]


class StatusHistoryEntry(BaseModel):
    """状态流转记录"""

    from_status: TaskStatus
    to_status: TaskStatus
    changed_by: str
    changed_at: datetime
    reason: str = Field(default="")


class AssignmentHistoryEntry(BaseModel):
    """分派记录（首次分派、重新分派、交接）"""

    assigned_to: str
    assigned_from: str | None = None
    assigned_by: str
    source: AssignmentSource
    status: str = Field(description="assigned / reassigned")
    notes: str | None = None
    at: datetime


class Task(BaseModel):
    """Task 数据模型 -- 分派给酒店员工的工作单元"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    version: int = Field(default=1, description="写入版本号，CAS 使用")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    department: Department = Field(description="负责部门")
    category: str = Field(default="general", description="任务分类（自由文本）")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    assigned_to: str | None = Field(default=None, description="负责员工 ID")
    assigned_by: str | None = Field(default=None, description="分派者 ID")
    assigned_at: datetime | None = None
    assignment_source: AssignmentSource | None = None
    created_by: str | None = None
    accepted_by: str | None = Field(default=None, description="首次开始处理的员工")
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    last_status_change: datetime | None = Field(
        default=None,
        description="最近一次状态变更时间，从未变更时为 None",
    )
    estimated_duration: int | None = Field(default=None, description="预计耗时（分钟）")
    is_active: bool = Field(default=True)
    origin: TaskOrigin = Field(default_factory=DirectOrigin, description="任务来源")
    attachments: list[Attachment] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    assignment_history: list[AssignmentHistoryEntry] = Field(default_factory=list)

    @property
    def origin_request_id(self) -> str | None:
        """来源请求 ID，直接创建的任务返回 None"""
        match self.origin:
            case GuestRequestOrigin(request_id=request_id):
                return request_id
            case DirectOrigin():
                return None
