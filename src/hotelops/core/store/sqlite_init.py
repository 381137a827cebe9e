"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL（status_history / assignment_history 等内嵌日志以 JSON 数组存储）
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id             TEXT PRIMARY KEY,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    version             INTEGER NOT NULL DEFAULT 1,
    title               TEXT NOT NULL DEFAULT '',
    description         TEXT NOT NULL DEFAULT '',
    department          TEXT NOT NULL,
    category            TEXT NOT NULL DEFAULT 'general',
    priority            TEXT NOT NULL DEFAULT 'medium',
    status              TEXT NOT NULL DEFAULT 'pending',
    assigned_to         TEXT,
    assigned_by         TEXT,
    assigned_at         TEXT,
    assignment_source   TEXT,
    created_by          TEXT,
    accepted_by         TEXT,
    accepted_at         TEXT,
    completed_at        TEXT,
    last_status_change  TEXT,
    estimated_duration  INTEGER,
    is_active           INTEGER NOT NULL DEFAULT 1,
    origin              TEXT NOT NULL DEFAULT '{"kind": "direct"}',
    origin_request_id   TEXT,
    attachments         TEXT NOT NULL DEFAULT '[]',
    notes               TEXT NOT NULL DEFAULT '[]',
    status_history      TEXT NOT NULL DEFAULT '[]',
    assignment_history  TEXT NOT NULL DEFAULT '[]'
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_department_status ON tasks(department, status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to_status ON tasks(assigned_to, status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
    # 反向同步按来源请求查询兄弟任务
    "CREATE INDEX IF NOT EXISTS idx_tasks_origin_request ON tasks(origin_request_id);",
]

# guest_requests 表 DDL
_REQUESTS_DDL = """
CREATE TABLE IF NOT EXISTS guest_requests (
    request_id          TEXT PRIMARY KEY,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    guest_id            TEXT,
    room_id             TEXT NOT NULL,
    booking_id          TEXT NOT NULL,
    check_in_id         TEXT NOT NULL,
    request_type        TEXT NOT NULL,
    title               TEXT NOT NULL,
    description         TEXT NOT NULL DEFAULT '',
    priority            TEXT NOT NULL DEFAULT 'medium',
    status              TEXT NOT NULL DEFAULT 'pending',
    assigned_to         TEXT,
    assigned_at         TEXT,
    completed_at        TEXT,
    feedback            TEXT,
    notes               TEXT NOT NULL DEFAULT '[]',
    is_anonymous        INTEGER NOT NULL DEFAULT 0,
    requires_follow_up  INTEGER NOT NULL DEFAULT 0,
    version             INTEGER NOT NULL DEFAULT 1,

    FOREIGN KEY (check_in_id) REFERENCES check_ins(check_in_id)
);
"""

_REQUESTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_requests_status ON guest_requests(status);",
    "CREATE INDEX IF NOT EXISTS idx_requests_guest ON guest_requests(guest_id);",
]

# staff 表 DDL（员工目录，外部维护，此处只读 + 测试/初始化写入）
_STAFF_DDL = """
CREATE TABLE IF NOT EXISTS staff (
    staff_id     TEXT PRIMARY KEY,
    name         TEXT NOT NULL DEFAULT '',
    role         TEXT NOT NULL DEFAULT 'staff',
    department   TEXT,
    is_active    INTEGER NOT NULL DEFAULT 1,
    is_approved  INTEGER NOT NULL DEFAULT 1
);
"""

_STAFF_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_staff_eligibility ON staff(role, department, is_active, is_approved);",
]

# check_ins 表 DDL
_CHECK_INS_DDL = """
CREATE TABLE IF NOT EXISTS check_ins (
    check_in_id    TEXT PRIMARY KEY,
    guest_id       TEXT NOT NULL,
    room_id        TEXT NOT NULL,
    booking_id     TEXT NOT NULL,
    status         TEXT NOT NULL DEFAULT 'checked_in',
    checked_in_at  TEXT NOT NULL
);
"""

_CHECK_INS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_check_ins_guest_status ON check_ins(guest_id, status);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # Store 层按列名读取行
    conn.row_factory = aiosqlite.Row

    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表（check_ins 先于 guest_requests，外键依赖）
    await conn.execute(_STAFF_DDL)
    await conn.execute(_CHECK_INS_DDL)
    await conn.execute(_REQUESTS_DDL)
    await conn.execute(_TASKS_DDL)

    # 创建索引
    for idx_sql in _STAFF_INDEXES + _CHECK_INS_INDEXES + _REQUESTS_INDEXES + _TASKS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
