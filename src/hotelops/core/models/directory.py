"""外部协作方的只读记录：员工目录与入住记录"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import CheckInStatus, Department, Role


class StaffMember(BaseModel):
    """员工目录条目"""

    staff_id: str
    name: str = Field(default="")
    role: Role = Field(default=Role.STAFF)
    department: Department | None = None
    is_active: bool = Field(default=True)
    is_approved: bool = Field(default=True)


class CheckIn(BaseModel):
    """入住记录（一次有效住宿）"""

    check_in_id: str
    guest_id: str
    room_id: str
    booking_id: str
    status: CheckInStatus = Field(default=CheckInStatus.CHECKED_IN)
    checked_in_at: datetime
