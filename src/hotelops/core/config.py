"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径和各项策略窗口的默认值。
运行期可调的分派/同步开关见 hotelops.tasking.config。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("HOTELOPS_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "HOTELOPS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "hotelops.db"),
    )


# 状态回退宽限期（秒）
DEFAULT_DOWNGRADE_GRACE_S: int = 5 * 60

# 未分派任务被视为"滞留"的阈值（秒）
DEFAULT_STALE_AFTER_S: int = 5 * 60

# 自动分派调度间隔（秒）
DEFAULT_SCHEDULER_INTERVAL_S: float = 60.0

# 待处理队列中"即将自动分派"提示的提前量（秒）
NEAR_AUTO_ASSIGN_LEAD_S: int = 60

# 系统操作者 ID，写入 assigned_by / changed_by
SYSTEM_ACTOR_ID: str = "system"
