"""跨实体共享的小模型：操作者身份、备注、附件"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import Role


class Actor(BaseModel):
    """操作者身份 -- 由外部认证层提供，此处视为可信"""

    id: str = Field(description="操作者 ID")
    role: Role = Field(description="操作者角色")


# 系统发起的操作（调度器、intake 自动分派）使用的固定身份
SYSTEM_ACTOR = Actor(id="system", role=Role.SYSTEM)


class Note(BaseModel):
    """备注条目"""

    content: str
    added_by: str
    added_at: datetime


class Attachment(BaseModel):
    """附件元数据（上传本身由外部处理）"""

    filename: str
    url: str
    uploaded_by: str | None = None
    uploaded_at: datetime | None = None
