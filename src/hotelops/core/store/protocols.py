"""Store Protocol 接口定义

定义 TaskStore、RequestStore、StaffDirectory、CheckInDirectory 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Protocol

from ..models.common import Note
from ..models.directory import CheckIn, StaffMember
from ..models.enums import Department, TaskStatus
from ..models.request import GuestServiceRequest, RequestFeedback
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(
        self,
        status: str | None = None,
        department: str | None = None,
        priority: str | None = None,
        assigned_to: str | None = None,
    ) -> list[Task]:
        """查询任务列表，支持多条件筛选"""
        ...

    async def list_by_origin_request(self, request_id: str) -> list[Task]:
        """查询同一服务请求派生出的所有任务"""
        ...

    async def list_stale_unassigned(self, cutoff: datetime) -> list[Task]:
        """查询滞留未分派的 pending 任务"""
        ...

    async def count_active_for_staff(self, staff_id: str) -> int:
        """统计员工当前活跃任务数"""
        ...

    async def count_by_status(self, department: Department | None = None) -> dict[str, int]:
        """按状态分组计数"""
        ...

    async def compare_and_swap(
        self,
        task: Task,
        expected_status: TaskStatus,
        expected_version: int,
        require_unassigned: bool = False,
    ) -> bool:
        """条件写入，返回是否生效"""
        ...

    async def delete_task(self, task_id: str) -> bool:
        """硬删除任务"""
        ...


class RequestStore(Protocol):
    """GuestServiceRequest 存储接口"""

    async def create_request(self, request: GuestServiceRequest) -> None:
        """创建服务请求记录"""
        ...

    async def get_request(self, request_id: str) -> GuestServiceRequest | None:
        """根据 request_id 查询服务请求"""
        ...

    async def list_requests(self, status: str | None = None) -> list[GuestServiceRequest]:
        """查询服务请求列表"""
        ...

    async def list_for_guest(self, guest_id: str) -> list[GuestServiceRequest]:
        """查询住客自己的请求"""
        ...

    async def update_status(
        self,
        request_id: str,
        status: TaskStatus,
        expected_status: TaskStatus,
        expected_version: int,
        updated_at: datetime,
        completed_at: datetime | None = None,
    ) -> bool:
        """条件更新请求状态，返回是否生效"""
        ...

    async def save_request(
        self,
        request: GuestServiceRequest,
        expected_status: TaskStatus,
        expected_version: int,
    ) -> bool:
        """条件整行写入，返回是否生效"""
        ...

    async def append_note(self, request_id: str, note: Note, updated_at: datetime) -> bool:
        """追加备注"""
        ...

    async def set_feedback(
        self,
        request_id: str,
        feedback: RequestFeedback,
        updated_at: datetime,
    ) -> bool:
        """写入反馈（仅 completed 请求）"""
        ...


class StaffDirectory(Protocol):
    """员工目录接口（只读）"""

    async def get_staff(self, staff_id: str) -> StaffMember | None:
        """根据 staff_id 查询员工"""
        ...

    async def list_eligible(self, department: Department) -> list[StaffMember]:
        """查询某部门的可分派员工"""
        ...


class CheckInDirectory(Protocol):
    """入住记录接口（只读）"""

    async def get_active_for_guest(self, guest_id: str) -> CheckIn | None:
        """查询住客当前有效的入住记录"""
        ...
