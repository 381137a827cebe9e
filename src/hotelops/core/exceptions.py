"""hotelops 异常体系

ValidationError / NotFoundError / InvalidRoleError / InvalidTransitionError /
PreconditionFailedError 直接抛给调用方，主实体保持不变。
SyncFailureError 只在后台副作用（反向同步、自动分派）内部使用，
由捕获方记录日志后吞掉，不回滚已提交的主写入。
"""


class HotelOpsError(Exception):
    """hotelops 基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(HotelOpsError):
    """输入格式错误或枚举值非法"""


class NotFoundError(HotelOpsError):
    """任务 / 请求 / 员工不存在"""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class InvalidRoleError(HotelOpsError):
    """操作目标或操作者角色不符合要求"""


class InvalidTransitionError(HotelOpsError):
    """状态流转被拒绝

    包括策略拒绝（宽限期外回退、同状态流转）和 CAS 竞争失败。
    CAS 竞争失败时 recoverable=True：重新读取后可再次尝试。
    """


class PreconditionFailedError(HotelOpsError):
    """前置条件不满足（如提交请求时没有有效入住记录）"""


class SyncFailureError(HotelOpsError):
    """反向同步或后台分派等副作用失败"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)
