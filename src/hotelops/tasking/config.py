"""TaskingConfig -- 分派与同步配置加载

从环境变量加载功能开关与策略窗口，不合法的值记录告警后回退默认值。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from hotelops.core.config import (
    DEFAULT_DOWNGRADE_GRACE_S,
    DEFAULT_SCHEDULER_INTERVAL_S,
    DEFAULT_STALE_AFTER_S,
)

log = structlog.get_logger()

StrategyName = Literal["random", "round_robin", "least_loaded"]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class TaskingConfig(BaseModel):
    """分派引擎配置

    环境变量:
        GSR_TO_TASK_PIPELINE: 服务请求提交后是否派生任务
        GSR_ALL_CANCELLED_CANCELS_GSR: 全部派生任务取消时是否取消请求
        HOTELOPS_STALE_AFTER_S: 未分派任务滞留阈值（秒，默认 300）
        HOTELOPS_SCHEDULER_INTERVAL_S: 自动分派调度间隔（秒，默认 60）
        HOTELOPS_DOWNGRADE_GRACE_S: 状态回退宽限期（秒，默认 300）
        HOTELOPS_ALLOW_TERMINAL_SWAP: 是否允许 completed <-> cancelled 互转
        HOTELOPS_ASSIGNMENT_STRATEGY: random / round_robin / least_loaded
    """

    gsr_to_task_pipeline: bool = Field(default=False, description="请求 -> 任务派生开关")
    gsr_all_cancelled_cancels_gsr: bool = Field(
        default=False,
        description="反向同步：全部取消 -> 请求取消",
    )
    stale_after_s: int = Field(default=DEFAULT_STALE_AFTER_S, ge=0)
    scheduler_interval_s: float = Field(default=DEFAULT_SCHEDULER_INTERVAL_S, gt=0)
    downgrade_grace_s: int = Field(default=DEFAULT_DOWNGRADE_GRACE_S, ge=0)
    allow_terminal_swap: bool = Field(
        default=True,
        description="终态互转不视为回退，不受宽限期约束",
    )
    assignment_strategy: StrategyName = Field(default="random")


def _read_bool(env_var: str, default: bool) -> bool:
    val = os.environ.get(env_var)
    if val is None or val == "":
        return default
    lowered = val.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    log.warning("invalid_flag_config", env_var=env_var, value=val, fallback=default)
    return default


def _read_number(env_var: str, default, cast):
    val = os.environ.get(env_var)
    if val is None or val == "":
        return default
    try:
        number = cast(val)
    except ValueError:
        log.warning("invalid_number_config", env_var=env_var, value=val, fallback=default)
        return default
    if number < 0:
        log.warning("negative_number_config", env_var=env_var, value=val, fallback=default)
        return default
    return number


def load_tasking_config() -> TaskingConfig:
    """从环境变量加载分派配置

    Returns:
        TaskingConfig 实例
    """
    kwargs: dict = {
        "gsr_to_task_pipeline": _read_bool("GSR_TO_TASK_PIPELINE", False),
        "gsr_all_cancelled_cancels_gsr": _read_bool("GSR_ALL_CANCELLED_CANCELS_GSR", False),
        "allow_terminal_swap": _read_bool("HOTELOPS_ALLOW_TERMINAL_SWAP", True),
        "stale_after_s": _read_number("HOTELOPS_STALE_AFTER_S", DEFAULT_STALE_AFTER_S, int),
        "downgrade_grace_s": _read_number(
            "HOTELOPS_DOWNGRADE_GRACE_S", DEFAULT_DOWNGRADE_GRACE_S, int
        ),
    }

    interval = _read_number(
        "HOTELOPS_SCHEDULER_INTERVAL_S", DEFAULT_SCHEDULER_INTERVAL_S, float
    )
    if interval == 0:
        log.warning(
            "invalid_interval_config",
            env_var="HOTELOPS_SCHEDULER_INTERVAL_S",
            fallback=DEFAULT_SCHEDULER_INTERVAL_S,
        )
        interval = DEFAULT_SCHEDULER_INTERVAL_S
    kwargs["scheduler_interval_s"] = interval

    if val := os.environ.get("HOTELOPS_ASSIGNMENT_STRATEGY"):
        if val in ("random", "round_robin", "least_loaded"):
            kwargs["assignment_strategy"] = val
        else:
            log.warning(
                "invalid_strategy_config",
                env_var="HOTELOPS_ASSIGNMENT_STRATEGY",
                value=val,
                fallback="random",
            )

    return TaskingConfig(**kwargs)
