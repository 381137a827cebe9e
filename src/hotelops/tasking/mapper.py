"""请求类型 -> 部门/分类 映射

纯函数、全函数：任何输入（包括未知值）都有确定结果，从不抛异常。
"""

from typing import NamedTuple

from hotelops.core.models import Department


class DeptCategory(NamedTuple):
    """部门 + 任务分类"""

    department: Department
    category: str


_FALLBACK = DeptCategory(Department.SERVICE, "guest_request")

_REQUEST_TYPE_MAP: dict[str, DeptCategory] = {
    "room_service": DeptCategory(Department.KITCHEN, "room_service"),
    "dining": DeptCategory(Department.KITCHEN, "room_service"),
    "housekeeping": DeptCategory(Department.HOUSEKEEPING, "cleaning"),
    "laundry": DeptCategory(Department.HOUSEKEEPING, "laundry"),
    "maintenance": DeptCategory(Department.MAINTENANCE, "general"),
    "concierge": DeptCategory(Department.SERVICE, "concierge"),
    "transport": DeptCategory(Department.SERVICE, "transportation"),
}


def map_request_type_to_dept_category(request_type: object) -> DeptCategory:
    """将住客请求类型映射为负责部门和任务分类

    Args:
        request_type: 请求类型（字符串或 RequestType），大小写与首尾空白不敏感

    Returns:
        DeptCategory；未知类型返回 Service/guest_request
    """
    if not isinstance(request_type, str):
        return _FALLBACK
    return _REQUEST_TYPE_MAP.get(request_type.strip().lower(), _FALLBACK)


def get_canonical_department(value: object) -> Department | None:
    """大小写不敏感地匹配固定部门集合

    Returns:
        匹配到的 Department；无法匹配时返回 None，不做猜测
    """
    if not isinstance(value, str):
        return None
    needle = value.strip().lower()
    if not needle:
        return None
    for department in Department:
        if department.value.lower() == needle:
            return department
    return None
