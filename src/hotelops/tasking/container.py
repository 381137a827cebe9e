"""TaskingContainer -- 组件装配

把 StoreGroup、配置、时钟和事件广播器装配成一组相互协作的引擎。
调用方（HTTP 层、CLI、测试）只需持有 container。
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from hotelops.core.clock import Clock, SystemClock
from hotelops.core.store import StoreGroup, create_store_group

from .assignment import AssignmentEngine
from .config import TaskingConfig, load_tasking_config
from .event_hub import TaskEventHub
from .handoff import HandoffEngine
from .intake import RequestIntakeBridge
from .request_service import RequestService
from .reverse_sync import ReverseSyncEngine
from .scheduler import AutoAssignmentScheduler
from .selection import StaffSelectionStrategy, build_selection_strategy
from .status_guard import StatusTransitionGuard
from .task_service import TaskService

log = structlog.get_logger()


class TaskingContainer:
    """分派子系统的组件集合"""

    def __init__(
        self,
        stores: StoreGroup,
        config: TaskingConfig,
        clock: Clock,
        event_hub: TaskEventHub | None = None,
        selection: StaffSelectionStrategy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.stores = stores
        self.config = config
        self.clock = clock
        self.event_hub = event_hub or TaskEventHub()
        self.selection = selection or build_selection_strategy(
            config.assignment_strategy, stores.task_store
        )

        self.reverse_sync = ReverseSyncEngine(
            stores.request_store, stores.task_store, config, clock
        )
        self.guard = StatusTransitionGuard(
            stores.task_store, self.event_hub, self.reverse_sync, config, clock
        )
        self.assignment = AssignmentEngine(
            stores.task_store,
            stores.staff_store,
            self.guard,
            self.selection,
            self.event_hub,
            self.reverse_sync,
            clock,
        )
        self.handoff = HandoffEngine(
            stores.task_store, stores.staff_store, self.event_hub, clock
        )
        self.task_service = TaskService(
            stores.task_store, self.assignment, self.event_hub, config, clock
        )
        self.request_service = RequestService(stores.request_store, clock)
        self.intake = RequestIntakeBridge(
            stores.request_store,
            stores.check_in_store,
            self.task_service,
            config,
            clock,
        )
        self.scheduler = AutoAssignmentScheduler(
            stores.task_store, self.assignment, config, clock, sleep=sleep
        )

    async def close(self) -> None:
        """停止调度器并关闭数据库连接"""
        await self.scheduler.stop()
        await self.stores.close()


async def create_container(
    db_path: str,
    config: TaskingConfig | None = None,
    clock: Clock | None = None,
) -> TaskingContainer:
    """创建数据库连接并装配全部组件"""
    stores = await create_store_group(db_path)
    config = config or load_tasking_config()
    container = TaskingContainer(stores, config, clock or SystemClock())
    log.info(
        "tasking_container_created",
        db_path=db_path,
        pipeline=config.gsr_to_task_pipeline,
        strategy=config.assignment_strategy,
    )
    return container
