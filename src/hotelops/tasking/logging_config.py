"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出

引擎在处理单个任务 / 服务请求时通过 structlog.contextvars 绑定
task_id、request_id，add_trace_id 据此生成 trace_id：
同一服务请求及其派生任务的日志共享 trace-{request_id}，
直接创建的任务使用 trace-{task_id}。
"""

import logging
import os

import structlog
from structlog.types import EventDict, WrappedLogger


def add_trace_id(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """根据 request_id / task_id 补充 trace_id（已显式传入时不覆盖）"""
    if "trace_id" in event_dict:
        return event_dict
    if request_id := event_dict.get("request_id"):
        event_dict["trace_id"] = f"trace-{request_id}"
    elif task_id := event_dict.get("task_id"):
        event_dict["trace_id"] = f"trace-{task_id}"
    return event_dict


def setup_logging() -> None:
    """初始化 structlog 配置

    根据 HOTELOPS_LOG_FORMAT 环境变量选择渲染模式：
    - "json": 结构化 JSON 输出（生产环境）
    - "dev" (默认): pretty print 可读输出

    HOTELOPS_LOG_LEVEL 控制级别（默认 INFO，非法值回退 INFO）。
    """
    log_format = os.environ.get("HOTELOPS_LOG_FORMAT", "dev")
    log_level = os.environ.get("HOTELOPS_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_trace_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        # 异常栈展开为 exception 字段，便于日志平台检索
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # aiosqlite 每条语句一条 DEBUG 日志
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
