"""AutoAssignmentScheduler -- 滞留任务自动分派

周期性扫描 pending 且超过滞留阈值仍未分派的任务，逐个走系统分派。
单个任务的失败只记录日志并计数，批次总会跑完。
时钟与 sleep 可注入，测试中无需真实等待。
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from datetime import timedelta

import structlog
from pydantic import BaseModel, Field

from hotelops.core.clock import Clock
from hotelops.core.store.protocols import TaskStore

from .assignment import AssignmentEngine
from .config import TaskingConfig

log = structlog.get_logger()


class SweepSummary(BaseModel):
    """单轮扫描结果"""

    examined: int = Field(default=0, description="扫描到的滞留任务数")
    assigned: int = Field(default=0, description="本轮成功分派数")
    unassigned: int = Field(default=0, description="无合格员工或认领失败")
    failed: int = Field(default=0, description="分派过程抛出异常")


class AutoAssignmentScheduler:
    """自动分派调度器"""

    def __init__(
        self,
        task_store: TaskStore,
        assignment_engine: AssignmentEngine,
        config: TaskingConfig,
        clock: Clock,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._tasks = task_store
        self._assignment = assignment_engine
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._stop_event = asyncio.Event()
        self._runner: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    async def tick(self) -> SweepSummary:
        """执行一轮扫描"""
        cutoff = self._clock.now() - timedelta(seconds=self._config.stale_after_s)
        stale = await self._tasks.list_stale_unassigned(cutoff)
        summary = SweepSummary(examined=len(stale))

        for task in stale:
            try:
                with structlog.contextvars.bound_contextvars(task_id=task.task_id):
                    result = await self._assignment.assign_system(task.task_id)
            except Exception as e:
                summary.failed += 1
                log.error(
                    "auto_assign_failed",
                    task_id=task.task_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue
            if result is None:
                summary.unassigned += 1
            else:
                summary.assigned += 1

        if summary.examined:
            log.info("auto_assign_sweep_completed", **summary.model_dump())
        return summary

    async def run_forever(self) -> None:
        """循环执行 tick -> sleep，直到 stop()"""
        self._stop_event.clear()
        log.info("auto_assign_scheduler_started", interval_s=self._config.scheduler_interval_s)
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                # 整轮失败（如数据库不可用）不终止调度循环
                log.error("auto_assign_sweep_failed", error_type=type(e).__name__, error=str(e))
            if self._stop_event.is_set():
                break
            await self._sleep(self._config.scheduler_interval_s)
        log.info("auto_assign_scheduler_stopped")

    def start(self) -> asyncio.Task:
        """在后台启动调度循环"""
        if self.running:
            return self._runner
        self._runner = asyncio.create_task(self.run_forever())
        return self._runner

    async def stop(self) -> None:
        """停止后台调度循环"""
        self._stop_event.set()
        if self._runner is None:
            return
        self._runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._runner
        self._runner = None
