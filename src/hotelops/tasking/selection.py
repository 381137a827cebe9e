"""员工选择策略

系统分派时从合格员工中挑选一人。默认均匀随机（不感知负载），
另提供按部门轮转与最少活跃任务两种策略。
"""

import random
from typing import Protocol

from hotelops.core.models import StaffMember, Task
from hotelops.core.store.protocols import TaskStore


class StaffSelectionStrategy(Protocol):
    """员工选择策略接口"""

    async def select(self, task: Task, candidates: list[StaffMember]) -> StaffMember:
        """从非空候选列表中选出一名员工"""
        ...


class RandomSelection:
    """均匀随机选择"""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    async def select(self, task: Task, candidates: list[StaffMember]) -> StaffMember:
        return self._rng.choice(candidates)


class RoundRobinSelection:
    """按部门轮转选择（游标仅保存在进程内存中）"""

    def __init__(self) -> None:
        self._cursors: dict[str, int] = {}

    async def select(self, task: Task, candidates: list[StaffMember]) -> StaffMember:
        key = task.department.value
        index = self._cursors.get(key, 0) % len(candidates)
        self._cursors[key] = index + 1
        return candidates[index]


class LeastLoadedSelection:
    """选择活跃任务最少的员工，并列时取 staff_id 最小者"""

    def __init__(self, task_store: TaskStore) -> None:
        self._tasks = task_store

    async def select(self, task: Task, candidates: list[StaffMember]) -> StaffMember:
        loads = [
            (await self._tasks.count_active_for_staff(member.staff_id), member.staff_id, member)
            for member in candidates
        ]
        loads.sort(key=lambda item: (item[0], item[1]))
        return loads[0][2]


def build_selection_strategy(name: str, task_store: TaskStore) -> StaffSelectionStrategy:
    """根据配置名称构建选择策略"""
    match name:
        case "round_robin":
            return RoundRobinSelection()
        case "least_loaded":
            return LeastLoadedSelection(task_store)
        case _:
            return RandomSelection()
