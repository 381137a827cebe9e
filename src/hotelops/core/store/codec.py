"""行 <-> 模型的字段编解码辅助

时间戳统一以微秒精度的 ISO 8601（UTC）字符串存储，保证 SQL 中按字符串比较即按时间比较。
"""

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def to_db_ts(value: datetime | None) -> str | None:
    """datetime -> 定长 ISO 字符串"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def dump_models(items: list[BaseModel]) -> str:
    """模型列表 -> JSON 数组字符串"""
    return json.dumps([item.model_dump(mode="json") for item in items], ensure_ascii=False)


def dump_model(item: BaseModel | None) -> str | None:
    if item is None:
        return None
    return item.model_dump_json()


def load_json(value: str | None, default: Any) -> Any:
    if not value:
        return default
    return json.loads(value)
