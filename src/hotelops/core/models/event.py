"""Event Domain Model

广播给实时通知层的任务事件。event_id 使用 ULID 格式，时间有序。
传输方式不属于本子系统。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import EventType


class Event(BaseModel):
    """任务事件"""

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    type: EventType = Field(description="事件类型")
    task_id: str = Field(description="关联的 Task ID")
    ts: datetime = Field(description="事件时间戳")
    actor_id: str = Field(description="触发事件的操作者 ID")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
