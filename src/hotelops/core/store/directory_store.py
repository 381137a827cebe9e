"""员工目录与入住记录的 SQLite 实现

两者都由外部系统维护；本子系统只读取，写入方法供初始化和测试使用。
"""

import aiosqlite

from ..models.directory import CheckIn, StaffMember
from ..models.enums import CheckInStatus, Department, Role
from .codec import to_db_ts


class SqliteStaffStore:
    """员工目录的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_staff(self, member: StaffMember) -> None:
        """写入或覆盖员工记录"""
        await self._conn.execute(
            """
            INSERT OR REPLACE INTO staff (staff_id, name, role, department,
                                          is_active, is_approved)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                member.staff_id,
                member.name,
                member.role.value,
                member.department.value if member.department else None,
                int(member.is_active),
                int(member.is_approved),
            ),
        )
        await self._conn.commit()

    async def get_staff(self, staff_id: str) -> StaffMember | None:
        """根据 staff_id 查询员工"""
        cursor = await self._conn.execute(
            "SELECT * FROM staff WHERE staff_id = ?",
            (staff_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_staff(row)

    async def list_eligible(self, department: Department) -> list[StaffMember]:
        """查询可分派员工：staff 角色、在职、已审批、部门匹配"""
        cursor = await self._conn.execute(
            """
            SELECT * FROM staff
            WHERE role = ? AND department = ? AND is_active = 1 AND is_approved = 1
            ORDER BY staff_id ASC
            """,
            (Role.STAFF.value, department.value),
        )
        rows = await cursor.fetchall()
        return [self._row_to_staff(row) for row in rows]

    @staticmethod
    def _row_to_staff(row: aiosqlite.Row) -> StaffMember:
        return StaffMember(
            staff_id=row["staff_id"],
            name=row["name"],
            role=Role(row["role"]),
            department=Department(row["department"]) if row["department"] else None,
            is_active=bool(row["is_active"]),
            is_approved=bool(row["is_approved"]),
        )


class SqliteCheckInStore:
    """入住记录的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_check_in(self, check_in: CheckIn) -> None:
        """写入或覆盖入住记录"""
        await self._conn.execute(
            """
            INSERT INTO check_ins (check_in_id, guest_id, room_id,
                                   booking_id, status, checked_in_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(check_in_id) DO UPDATE SET
                guest_id = excluded.guest_id,
                room_id = excluded.room_id,
                booking_id = excluded.booking_id,
                status = excluded.status,
                checked_in_at = excluded.checked_in_at
            """,
            (
                check_in.check_in_id,
                check_in.guest_id,
                check_in.room_id,
                check_in.booking_id,
                check_in.status.value,
                to_db_ts(check_in.checked_in_at),
            ),
        )
        await self._conn.commit()

    async def get_active_for_guest(self, guest_id: str) -> CheckIn | None:
        """查询住客当前有效（checked_in）的入住记录，多条时取最近一次"""
        cursor = await self._conn.execute(
            """
            SELECT * FROM check_ins
            WHERE guest_id = ? AND status = ?
            ORDER BY checked_in_at DESC
            LIMIT 1
            """,
            (guest_id, CheckInStatus.CHECKED_IN.value),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return CheckIn.model_validate(dict(row))
