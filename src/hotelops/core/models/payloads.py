"""Event Payload 子类型

所有任务事件的结构化 payload 定义。
"""

from pydantic import BaseModel, Field

from .enums import AssignmentSource, Department, TaskPriority, TaskStatus


class TaskCreatedPayload(BaseModel):
    """taskCreated 事件 payload"""

    title: str
    department: Department
    category: str
    priority: TaskPriority
    origin_request_id: str | None = None


class TaskAssignedPayload(BaseModel):
    """taskAssigned 事件 payload"""

    assigned_to: str
    assigned_by: str
    source: AssignmentSource
    status: TaskStatus


class TaskUpdatedPayload(BaseModel):
    """taskUpdated 事件 payload

    状态流转时 from_status/to_status 均有值；
    交接、备注、详情修改时为 None，changes 列出变更字段。
    """

    status: TaskStatus
    from_status: TaskStatus | None = None
    to_status: TaskStatus | None = None
    changes: list[str] = Field(default_factory=list)
    reason: str = Field(default="")


class TaskDeletedPayload(BaseModel):
    """taskDeleted 事件 payload"""

    deleted_by: str
