"""TaskStore SQLite 实现

状态/分派写入一律走 compare_and_swap：单条带条件的 UPDATE，
受影响行数为 0 即表示写入方在竞争中失败，不做 read-modify-write。
每个写方法自行提交，一次写入即一次数据库往返。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import ACTIVE_STATES, Department, TaskStatus
from ..models.task import Task
from .codec import dump_model, dump_models, load_json, to_db_ts

_MUTABLE_COLUMNS = (
    "updated_at",
    "version",
    "title",
    "description",
    "department",
    "category",
    "priority",
    "status",
    "assigned_to",
    "assigned_by",
    "assigned_at",
    "assignment_source",
    "created_by",
    "accepted_by",
    "accepted_at",
    "completed_at",
    "last_status_change",
    "estimated_duration",
    "is_active",
    "origin",
    "origin_request_id",
    "attachments",
    "notes",
    "status_history",
    "assignment_history",
)

_ALL_COLUMNS = ("task_id", "created_at", *_MUTABLE_COLUMNS)

_JSON_LIST_COLUMNS = ("attachments", "notes", "status_history", "assignment_history")


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        columns = ", ".join(_ALL_COLUMNS)
        placeholders = ", ".join(f":{c}" for c in _ALL_COLUMNS)
        await self._conn.execute(
            f"INSERT INTO tasks ({columns}) VALUES ({placeholders})",
            self._task_params(task),
        )
        await self._conn.commit()

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        status: str | None = None,
        department: str | None = None,
        priority: str | None = None,
        assigned_to: str | None = None,
    ) -> list[Task]:
        """查询任务列表，支持多条件筛选，按 created_at 倒序"""
        clauses: list[str] = []
        params: list[str] = []
        for column, value in (
            ("status", status),
            ("department", department),
            ("priority", priority),
            ("assigned_to", assigned_to),
        ):
            if value:
                clauses.append(f"{column} = ?")
                params.append(value)

        sql = "SELECT * FROM tasks"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC"

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_by_origin_request(self, request_id: str) -> list[Task]:
        """查询同一服务请求派生出的所有兄弟任务"""
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE origin_request_id = ? ORDER BY created_at ASC",
            (request_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_stale_unassigned(self, cutoff: datetime) -> list[Task]:
        """查询创建时间不晚于 cutoff、仍未分派的活跃 pending 任务"""
        cursor = await self._conn.execute(
            """
            SELECT * FROM tasks
            WHERE status = ? AND assigned_to IS NULL AND is_active = 1
              AND created_at <= ?
            ORDER BY created_at ASC
            """,
            (TaskStatus.PENDING.value, to_db_ts(cutoff)),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def count_active_for_staff(self, staff_id: str) -> int:
        """统计员工当前手上的活跃任务数（assigned / in_progress）"""
        statuses = sorted(s.value for s in ACTIVE_STATES)
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM tasks WHERE assigned_to = ? AND status IN (?, ?)",
            (staff_id, *statuses),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def count_by_status(self, department: Department | None = None) -> dict[str, int]:
        """按状态分组计数，可限定部门"""
        if department:
            cursor = await self._conn.execute(
                "SELECT status, COUNT(*) FROM tasks WHERE department = ? GROUP BY status",
                (department.value,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT status, COUNT(*) FROM tasks GROUP BY status"
            )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    async def compare_and_swap(
        self,
        task: Task,
        expected_status: TaskStatus,
        expected_version: int,
        require_unassigned: bool = False,
    ) -> bool:
        """条件写入：仅当库中任务仍处于 (expected_status, expected_version) 时覆盖

        Args:
            task: 写入后的完整任务（version 应已递增）
            expected_status: 写入方读取时看到的状态
            expected_version: 写入方读取时看到的版本号
            require_unassigned: 额外要求 assigned_to 仍为空（调度器认领）

        Returns:
            True 如果写入生效；False 表示已被其他写入方抢先
        """
        assignments = ", ".join(f"{c} = :{c}" for c in _MUTABLE_COLUMNS)
        sql = (
            f"UPDATE tasks SET {assignments} "
            "WHERE task_id = :task_id AND status = :expected_status "
            "AND version = :expected_version"
        )
        if require_unassigned:
            sql += " AND assigned_to IS NULL"

        params = self._task_params(task)
        params["expected_status"] = expected_status.value
        params["expected_version"] = expected_version

        try:
            cursor = await self._conn.execute(sql, params)
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return cursor.rowcount == 1

    async def delete_task(self, task_id: str) -> bool:
        """硬删除任务，返回是否存在并被删除"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        await self._conn.commit()
        return cursor.rowcount == 1

    @staticmethod
    def _task_params(task: Task) -> dict:
        """将 Task 模型转换为命名参数"""
        return {
            "task_id": task.task_id,
            "created_at": to_db_ts(task.created_at),
            "updated_at": to_db_ts(task.updated_at),
            "version": task.version,
            "title": task.title,
            "description": task.description,
            "department": task.department.value,
            "category": task.category,
            "priority": task.priority.value,
            "status": task.status.value,
            "assigned_to": task.assigned_to,
            "assigned_by": task.assigned_by,
            "assigned_at": to_db_ts(task.assigned_at),
            "assignment_source": (
                task.assignment_source.value if task.assignment_source else None
            ),
            "created_by": task.created_by,
            "accepted_by": task.accepted_by,
            "accepted_at": to_db_ts(task.accepted_at),
            "completed_at": to_db_ts(task.completed_at),
            "last_status_change": to_db_ts(task.last_status_change),
            "estimated_duration": task.estimated_duration,
            "is_active": int(task.is_active),
            "origin": dump_model(task.origin),
            "origin_request_id": task.origin_request_id,
            "attachments": dump_models(task.attachments),
            "notes": dump_models(task.notes),
            "status_history": dump_models(task.status_history),
            "assignment_history": dump_models(task.assignment_history),
        }

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        data = dict(row)
        data.pop("origin_request_id", None)
        data["is_active"] = bool(data["is_active"])
        data["origin"] = load_json(data["origin"], {"kind": "direct"})
        for column in _JSON_LIST_COLUMNS:
            data[column] = load_json(data[column], [])
        return Task.model_validate(data)
