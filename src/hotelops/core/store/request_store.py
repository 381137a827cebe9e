"""RequestStore SQLite 实现

GuestServiceRequest 的持久化。状态写入来自员工手动更新和反向同步，
两者都以 (status, version) 做 CAS；备注与反馈只更新各自的列，同样递增 version。
"""

from datetime import datetime

import aiosqlite

from ..models.common import Note
from ..models.enums import TaskStatus
from ..models.request import GuestServiceRequest, RequestFeedback
from .codec import dump_model, dump_models, load_json, to_db_ts

_COLUMNS = (
    "request_id",
    "created_at",
    "updated_at",
    "guest_id",
    "room_id",
    "booking_id",
    "check_in_id",
    "request_type",
    "title",
    "description",
    "priority",
    "status",
    "assigned_to",
    "assigned_at",
    "completed_at",
    "feedback",
    "notes",
    "is_anonymous",
    "requires_follow_up",
    "version",
)


class SqliteRequestStore:
    """RequestStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_request(self, request: GuestServiceRequest) -> None:
        """创建服务请求记录"""
        columns = ", ".join(_COLUMNS)
        placeholders = ", ".join(f":{c}" for c in _COLUMNS)
        await self._conn.execute(
            f"INSERT INTO guest_requests ({columns}) VALUES ({placeholders})",
            self._request_params(request),
        )
        await self._conn.commit()

    async def get_request(self, request_id: str) -> GuestServiceRequest | None:
        """根据 request_id 查询服务请求"""
        cursor = await self._conn.execute(
            "SELECT * FROM guest_requests WHERE request_id = ?",
            (request_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    async def list_requests(self, status: str | None = None) -> list[GuestServiceRequest]:
        """查询服务请求列表，支持按状态筛选，按 created_at 倒序"""
        if status:
            cursor = await self._conn.execute(
                "SELECT * FROM guest_requests WHERE status = ? ORDER BY created_at DESC",
                (status,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM guest_requests ORDER BY created_at DESC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_request(row) for row in rows]

    async def list_for_guest(self, guest_id: str) -> list[GuestServiceRequest]:
        """查询某住客提交的（非匿名）请求"""
        cursor = await self._conn.execute(
            "SELECT * FROM guest_requests WHERE guest_id = ? ORDER BY created_at DESC",
            (guest_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_request(row) for row in rows]

    async def update_status(
        self,
        request_id: str,
        status: TaskStatus,
        expected_status: TaskStatus,
        expected_version: int,
        updated_at: datetime,
        completed_at: datetime | None = None,
    ) -> bool:
        """条件更新请求状态（反向同步入口），completed_at 仅在传入时覆盖

        Returns:
            True 如果写入生效；False 表示请求不存在或已被其他写入方修改
        """
        sql = (
            "UPDATE guest_requests SET status = :status, updated_at = :updated_at, "
            "version = version + 1"
        )
        params = {
            "status": status.value,
            "updated_at": to_db_ts(updated_at),
            "request_id": request_id,
            "expected_status": expected_status.value,
            "expected_version": expected_version,
        }
        if completed_at is not None:
            sql += ", completed_at = :completed_at"
            params["completed_at"] = to_db_ts(completed_at)
        sql += (
            " WHERE request_id = :request_id AND status = :expected_status"
            " AND version = :expected_version"
        )
        return await self._execute_write(sql, params)

    async def save_request(
        self,
        request: GuestServiceRequest,
        expected_status: TaskStatus,
        expected_version: int,
    ) -> bool:
        """条件整行写入：仅当库中请求仍处于 (expected_status, expected_version) 时覆盖

        Args:
            request: 写入后的完整请求（version 应已递增）
            expected_status: 写入方读取时看到的状态
            expected_version: 写入方读取时看到的版本号
        """
        assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS if c != "request_id")
        params = self._request_params(request)
        params["expected_status"] = expected_status.value
        params["expected_version"] = expected_version
        return await self._execute_write(
            f"UPDATE guest_requests SET {assignments} "
            "WHERE request_id = :request_id AND status = :expected_status "
            "AND version = :expected_version",
            params,
        )

    async def append_note(self, request_id: str, note: Note, updated_at: datetime) -> bool:
        """在 notes 数组末尾追加一条备注，不触碰 status"""
        return await self._execute_write(
            """
            UPDATE guest_requests
            SET notes = json_insert(notes, '$[#]', json(:note)),
                updated_at = :updated_at,
                version = version + 1
            WHERE request_id = :request_id
            """,
            {
                "note": note.model_dump_json(),
                "updated_at": to_db_ts(updated_at),
                "request_id": request_id,
            },
        )

    async def set_feedback(
        self,
        request_id: str,
        feedback: RequestFeedback,
        updated_at: datetime,
    ) -> bool:
        """写入住客反馈，仅当请求仍为 completed 时生效"""
        return await self._execute_write(
            """
            UPDATE guest_requests
            SET feedback = :feedback, updated_at = :updated_at, version = version + 1
            WHERE request_id = :request_id AND status = :completed
            """,
            {
                "feedback": feedback.model_dump_json(),
                "updated_at": to_db_ts(updated_at),
                "request_id": request_id,
                "completed": TaskStatus.COMPLETED.value,
            },
        )

    async def _execute_write(self, sql: str, params: dict) -> bool:
        try:
            cursor = await self._conn.execute(sql, params)
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise
        return cursor.rowcount == 1

    @staticmethod
    def _request_params(request: GuestServiceRequest) -> dict:
        """将 GuestServiceRequest 模型转换为命名参数"""
        return {
            "request_id": request.request_id,
            "created_at": to_db_ts(request.created_at),
            "updated_at": to_db_ts(request.updated_at),
            "guest_id": request.guest_id,
            "room_id": request.room_id,
            "booking_id": request.booking_id,
            "check_in_id": request.check_in_id,
            "request_type": request.request_type.value,
            "title": request.title,
            "description": request.description,
            "priority": request.priority.value,
            "status": request.status.value,
            "assigned_to": request.assigned_to,
            "assigned_at": to_db_ts(request.assigned_at),
            "completed_at": to_db_ts(request.completed_at),
            "feedback": dump_model(request.feedback),
            "notes": dump_models(request.notes),
            "is_anonymous": int(request.is_anonymous),
            "requires_follow_up": int(request.requires_follow_up),
            "version": request.version,
        }

    @staticmethod
    def _row_to_request(row: aiosqlite.Row) -> GuestServiceRequest:
        """将数据库行转换为 GuestServiceRequest 模型"""
        data = dict(row)
        data["is_anonymous"] = bool(data["is_anonymous"])
        data["requires_follow_up"] = bool(data["requires_follow_up"])
        data["feedback"] = load_json(data["feedback"], None)
        data["notes"] = load_json(data["notes"], [])
        return GuestServiceRequest.model_validate(data)
