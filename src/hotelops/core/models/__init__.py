"""hotelops Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .common import SYSTEM_ACTOR, Actor, Attachment, Note
from .directory import CheckIn, StaffMember
from .enums import (
    ACTIVE_STATES,
    PRIORITY_ESCALATION,
    STATUS_RANK,
    TERMINAL_STATES,
    AssignmentSource,
    CheckInStatus,
    Department,
    EventType,
    RequestType,
    Role,
    TaskPriority,
    TaskStatus,
    is_downgrade,
    is_terminal_swap,
)
from .event import Event
from .payloads import (
    TaskAssignedPayload,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskUpdatedPayload,
)
from .request import GuestServiceRequest, RequestFeedback
from .task import (
    AssignmentHistoryEntry,
    DirectOrigin,
    GuestRequestOrigin,
    StatusHistoryEntry,
    Task,
    TaskOrigin,
)

__all__ = [
    # 枚举
    "TaskStatus",
    "Department",
    "TaskPriority",
    "AssignmentSource",
    "Role",
    "RequestType",
    "CheckInStatus",
    "EventType",
    # 状态机
    "STATUS_RANK",
    "TERMINAL_STATES",
    "ACTIVE_STATES",
    "PRIORITY_ESCALATION",
    "is_downgrade",
    "is_terminal_swap",
    # 通用
    "Actor",
    "SYSTEM_ACTOR",
    "Note",
    "Attachment",
    # Task
    "Task",
    "TaskOrigin",
    "DirectOrigin",
    "GuestRequestOrigin",
    "StatusHistoryEntry",
    "AssignmentHistoryEntry",
    # GuestServiceRequest
    "GuestServiceRequest",
    "RequestFeedback",
    # 目录
    "StaffMember",
    "CheckIn",
    # Event
    "Event",
    # Payloads
    "TaskCreatedPayload",
    "TaskAssignedPayload",
    "TaskUpdatedPayload",
    "TaskDeletedPayload",
]
