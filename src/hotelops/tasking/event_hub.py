"""TaskEventHub -- 内存中任务事件广播器

每个订阅者持有一个 asyncio.Queue，支持按 task_id 订阅或订阅全部（"*"）。
队列已满的订阅者视为失联，直接移除，广播方从不阻塞。
"""

import asyncio
from collections import defaultdict
from datetime import datetime

import structlog
from pydantic import BaseModel
from ulid import ULID

from hotelops.core.models import Event, EventType

log = structlog.get_logger()

ALL_TASKS = "*"


class TaskEventHub:
    """任务事件广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        # task_id（或 "*"）-> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, task_id: str = ALL_TASKS) -> asyncio.Queue:
        """订阅事件流

        Args:
            task_id: 要订阅的任务 ID，默认 "*" 订阅全部任务

        Returns:
            asyncio.Queue 实例，新事件会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[task_id].add(queue)
        return queue

    async def unsubscribe(self, task_id: str, queue: asyncio.Queue) -> None:
        """取消订阅"""
        self._subscribers[task_id].discard(queue)
        if not self._subscribers[task_id]:
            del self._subscribers[task_id]

    async def broadcast(self, event: Event) -> None:
        """向该任务的订阅者以及全局订阅者广播事件"""
        for key in (event.task_id, ALL_TASKS):
            dead_queues = []
            for queue in self._subscribers.get(key, set()):
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    dead_queues.append(queue)

            # 清理已满的队列
            for q in dead_queues:
                self._subscribers[key].discard(q)
                log.warning("event_subscriber_dropped", key=key, event_type=event.type)
            if key in self._subscribers and not self._subscribers[key]:
                del self._subscribers[key]

    async def publish(
        self,
        event_type: EventType,
        task_id: str,
        actor_id: str,
        payload: BaseModel,
        ts: datetime,
    ) -> Event:
        """构建并广播一条任务事件

        Returns:
            已广播的 Event
        """
        event = Event(
            event_id=str(ULID()),
            type=event_type,
            task_id=task_id,
            ts=ts,
            actor_id=actor_id,
            payload=payload.model_dump(mode="json"),
        )
        await self.broadcast(event)
        log.debug("task_event_published", task_id=task_id, event_type=event_type)
        return event

    def subscriber_count(self, task_id: str = ALL_TASKS) -> int:
        return len(self._subscribers.get(task_id, ()))
