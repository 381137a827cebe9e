"""CLI 入口模块 -- python -m hotelops.tasking <command>

支持的命令：
  init-db        创建数据库与表结构
  sweep          执行一轮滞留任务自动分派
  run-scheduler  持续运行自动分派调度器（Ctrl+C 退出）
"""

import asyncio
import sys

from hotelops.core.config import get_db_path

from .logging_config import setup_logging

_USAGE = """用法: python -m hotelops.tasking <command>
命令:
  init-db        创建数据库与表结构
  sweep          执行一轮滞留任务自动分派
  run-scheduler  持续运行自动分派调度器（Ctrl+C 退出）"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    setup_logging()
    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_db())
    elif command == "sweep":
        asyncio.run(sweep())
    elif command == "run-scheduler":
        try:
            asyncio.run(run_scheduler())
        except KeyboardInterrupt:
            print("调度器已停止")
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, sweep, run-scheduler")
        sys.exit(1)


async def init_db() -> None:
    """初始化数据库"""
    from hotelops.core.store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.close()
    print("数据库初始化完成")


async def sweep() -> None:
    """执行一轮自动分派"""
    from .container import create_container

    container = await create_container(get_db_path())
    try:
        summary = await container.scheduler.tick()
        print(
            f"扫描 {summary.examined} 个滞留任务: "
            f"分派 {summary.assigned}，未分派 {summary.unassigned}，失败 {summary.failed}"
        )
    finally:
        await container.close()


async def run_scheduler() -> None:
    """前台运行调度循环"""
    from .container import create_container

    container = await create_container(get_db_path())
    try:
        await container.scheduler.run_forever()
    finally:
        await container.close()


if __name__ == "__main__":
    main()
