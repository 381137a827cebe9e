"""枚举定义

包含 TaskStatus 状态机、部门/优先级/角色等业务枚举，
以及 STATUS_RANK 状态等级映射和 TERMINAL_STATES / ACTIVE_STATES 集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机（GuestServiceRequest 复用同一组取值）"""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"

    # 终态
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 状态等级：rank 降低即为"回退"（downgrade）
# 两个终态共享同一等级，终态之间互转不视为回退
STATUS_RANK: dict[TaskStatus, int] = {
    TaskStatus.PENDING: 0,
    TaskStatus.ASSIGNED: 1,
    TaskStatus.IN_PROGRESS: 2,
    TaskStatus.COMPLETED: 3,
    TaskStatus.CANCELLED: 3,
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
}

# 已有人负责、工作尚未结束的状态
ACTIVE_STATES: set[TaskStatus] = {
    TaskStatus.ASSIGNED,
    TaskStatus.IN_PROGRESS,
}


class Department(StrEnum):
    """员工所属部门"""

    HOUSEKEEPING = "Housekeeping"
    KITCHEN = "Kitchen"
    MAINTENANCE = "Maintenance"
    SERVICE = "Service"


class TaskPriority(StrEnum):
    """任务优先级（按升级顺序排列）"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# 优先级升级链：urgent 已是最高级
PRIORITY_ESCALATION: dict[TaskPriority, TaskPriority] = {
    TaskPriority.LOW: TaskPriority.MEDIUM,
    TaskPriority.MEDIUM: TaskPriority.HIGH,
    TaskPriority.HIGH: TaskPriority.URGENT,
    TaskPriority.URGENT: TaskPriority.URGENT,
}


class AssignmentSource(StrEnum):
    """分派来源：人工 or 系统"""

    USER = "user"
    SYSTEM = "system"


class Role(StrEnum):
    """操作者 / 用户角色"""

    GUEST = "guest"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"
    SYSTEM = "system"


class RequestType(StrEnum):
    """住客服务请求类型"""

    ROOM_SERVICE = "room_service"
    DINING = "dining"
    HOUSEKEEPING = "housekeeping"
    LAUNDRY = "laundry"
    MAINTENANCE = "maintenance"
    CONCIERGE = "concierge"
    TRANSPORT = "transport"
    WAKE_UP_CALL = "wake_up_call"
    AMENITIES = "amenities"
    OTHER = "other"


class CheckInStatus(StrEnum):
    """入住记录状态"""

    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class EventType(StrEnum):
    """向实时通知层广播的事件类型"""

    TASK_CREATED = "taskCreated"
    TASK_ASSIGNED = "taskAssigned"
    TASK_UPDATED = "taskUpdated"
    TASK_DELETED = "taskDeleted"


def is_downgrade(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """判断状态流转是否为回退

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果目标状态等级低于当前状态
    """
    return STATUS_RANK[to_status] < STATUS_RANK[from_status]


def is_terminal_swap(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """判断是否为终态之间的互转（completed <-> cancelled）"""
    return (
        from_status in TERMINAL_STATES
        and to_status in TERMINAL_STATES
        and from_status != to_status
    )
