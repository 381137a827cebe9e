"""全局 pytest 配置 -- 临时 SQLite 数据库、手动时钟与组件装配 fixture"""

import random
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from ulid import ULID

from hotelops.core.clock import ManualClock
from hotelops.core.models import (
    Actor,
    CheckIn,
    Department,
    DirectOrigin,
    GuestRequestOrigin,
    GuestServiceRequest,
    RequestType,
    Role,
    StaffMember,
    Task,
    TaskStatus,
)
from hotelops.core.store import StoreGroup, create_store_group
from hotelops.tasking.config import TaskingConfig
from hotelops.tasking.container import TaskingContainer
from hotelops.tasking.selection import RandomSelection


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "sqlite" / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from hotelops.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_path / "raw.db"))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def clock() -> ManualClock:
    """从 2025-01-01 09:00 UTC 开始的手动时钟"""
    return ManualClock()


@pytest.fixture
def tasking_config() -> TaskingConfig:
    """默认配置（测试中按需 model_copy 覆盖）"""
    return TaskingConfig()


@pytest_asyncio.fixture
async def stores(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """共享连接的 Store 实例组"""
    store_group = await create_store_group(str(tmp_db_path))
    yield store_group
    await store_group.close()


@pytest.fixture
def build_container(
    stores: StoreGroup,
    clock: ManualClock,
    tasking_config: TaskingConfig,
) -> Callable[..., TaskingContainer]:
    """按需覆盖配置项构建 container，随机选择使用固定种子"""

    def _build(**overrides) -> TaskingContainer:
        config = tasking_config.model_copy(update=overrides)
        return TaskingContainer(
            stores,
            config,
            clock,
            selection=RandomSelection(random.Random(7)),
        )

    return _build


@pytest.fixture
def container(build_container) -> TaskingContainer:
    return build_container()


@pytest.fixture
def manager() -> Actor:
    return Actor(id="mgr-1", role=Role.MANAGER)


@pytest.fixture
def guest() -> Actor:
    return Actor(id="guest-1", role=Role.GUEST)


@pytest.fixture
def add_staff(stores: StoreGroup) -> Callable[..., Awaitable[StaffMember]]:
    """写入员工目录"""

    async def _add(
        staff_id: str,
        department: Department | None = Department.KITCHEN,
        role: Role = Role.STAFF,
        is_active: bool = True,
        is_approved: bool = True,
    ) -> StaffMember:
        member = StaffMember(
            staff_id=staff_id,
            name=staff_id,
            role=role,
            department=department,
            is_active=is_active,
            is_approved=is_approved,
        )
        await stores.staff_store.upsert_staff(member)
        return member

    return _add


@pytest.fixture
def add_task(stores: StoreGroup, clock: ManualClock) -> Callable[..., Awaitable[Task]]:
    """直接写入任务（不经过 TaskService，不触发分派）"""

    async def _add(
        department: Department = Department.KITCHEN,
        status: TaskStatus = TaskStatus.PENDING,
        assigned_to: str | None = None,
        request_id: str | None = None,
        age: timedelta = timedelta(),
        title: str = "test task",
    ) -> Task:
        created_at = clock.now() - age
        task = Task(
            task_id=str(ULID()),
            created_at=created_at,
            updated_at=created_at,
            title=title,
            department=department,
            status=status,
            assigned_to=assigned_to,
            origin=GuestRequestOrigin(request_id=request_id) if request_id else DirectOrigin(),
        )
        await stores.task_store.create_task(task)
        return task

    return _add


@pytest.fixture
def check_in_guest(stores: StoreGroup, clock: ManualClock) -> Callable[..., Awaitable[CheckIn]]:
    """为住客写入一条有效入住记录"""

    async def _check_in(guest_id: str = "guest-1", room_id: str = "room-101") -> CheckIn:
        record = CheckIn(
            check_in_id=f"ci-{guest_id}-{room_id}",
            guest_id=guest_id,
            room_id=room_id,
            booking_id=f"bk-{guest_id}",
            checked_in_at=clock.now() - timedelta(days=1),
        )
        await stores.check_in_store.upsert_check_in(record)
        return record

    return _check_in


@pytest.fixture
def add_request(
    stores: StoreGroup,
    clock: ManualClock,
    check_in_guest,
) -> Callable[..., Awaitable[GuestServiceRequest]]:
    """直接写入一条服务请求（不经过 intake，不派生任务）"""

    async def _add(
        guest_id: str = "guest-1",
        request_type: RequestType = RequestType.MAINTENANCE,
        status: TaskStatus = TaskStatus.PENDING,
    ) -> GuestServiceRequest:
        record = await check_in_guest(guest_id)
        now = clock.now()
        request = GuestServiceRequest(
            request_id=str(ULID()),
            created_at=now,
            updated_at=now,
            guest_id=guest_id,
            room_id=record.room_id,
            booking_id=record.booking_id,
            check_in_id=record.check_in_id,
            request_type=request_type,
            title="leaking tap",
            status=status,
        )
        await stores.request_store.create_request(request)
        return request

    return _add
