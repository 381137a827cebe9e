"""ReverseSyncEngine -- 由派生任务的聚合状态重算服务请求状态

重算规则（按顺序匹配）：
1. 存在活跃任务（assigned / in_progress）-> in_progress
2. 全部任务 completed -> completed（并写入 completed_at）
3. 开关打开且全部任务 cancelled -> cancelled
4. 其余情况保持不变

写回以 (status, version) 做 CAS，竞争失败时重新读取并重算。
同步是旁路副作用：任何失败只记录日志，从不向上抛出，
也不回滚触发同步的任务写入。
"""

from collections.abc import Iterable

import structlog

from hotelops.core.clock import Clock
from hotelops.core.exceptions import SyncFailureError
from hotelops.core.models import ACTIVE_STATES, GuestServiceRequest, TaskStatus
from hotelops.core.store.protocols import RequestStore, TaskStore

from .config import TaskingConfig

log = structlog.get_logger()

# 条件写入失败后的最大重算次数
_MAX_ATTEMPTS = 3


def compute_target_status(
    statuses: Iterable[TaskStatus],
    all_cancelled_cancels: bool = False,
) -> TaskStatus | None:
    """根据兄弟任务状态计算请求的目标状态

    Args:
        statuses: 同一请求派生出的全部任务状态
        all_cancelled_cancels: 全部取消时是否取消请求

    Returns:
        目标状态；None 表示不做变更
    """
    statuses = list(statuses)
    total = len(statuses)
    if total == 0:
        return None

    active = sum(1 for s in statuses if s in ACTIVE_STATES)
    completed = sum(1 for s in statuses if s == TaskStatus.COMPLETED)
    cancelled = sum(1 for s in statuses if s == TaskStatus.CANCELLED)

    if active > 0:
        return TaskStatus.IN_PROGRESS
    if completed == total:
        return TaskStatus.COMPLETED
    if all_cancelled_cancels and cancelled == total:
        return TaskStatus.CANCELLED
    return None


class ReverseSyncEngine:
    """服务请求反向同步"""

    def __init__(
        self,
        request_store: RequestStore,
        task_store: TaskStore,
        config: TaskingConfig,
        clock: Clock,
    ) -> None:
        self._requests = request_store
        self._tasks = task_store
        self._config = config
        self._clock = clock

    async def sync(self, request_id: str) -> GuestServiceRequest | None:
        """重算并写回请求状态

        Returns:
            同步后的请求；失败或请求不存在时返回 None
        """
        try:
            return await self._sync(request_id)
        except SyncFailureError as e:
            log.warning("reverse_sync_failed", request_id=request_id, error=e.message)
        except Exception as e:
            log.error(
                "reverse_sync_failed",
                request_id=request_id,
                error_type=type(e).__name__,
                error=str(e),
            )
        return None

    async def _sync(self, request_id: str) -> GuestServiceRequest:
        for attempt in range(1, _MAX_ATTEMPTS + 1):
            request = await self._requests.get_request(request_id)
            if request is None:
                raise SyncFailureError(f"GuestServiceRequest not found: {request_id}")

            siblings = await self._tasks.list_by_origin_request(request_id)
            statuses = [t.status for t in siblings]
            target = compute_target_status(
                statuses,
                all_cancelled_cancels=self._config.gsr_all_cancelled_cancels_gsr,
            )

            if target is None:
                if len(set(statuses)) > 1:
                    # 混合 pending / completed / cancelled：没有明确的聚合语义
                    log.info(
                        "reverse_sync_ambiguous",
                        request_id=request_id,
                        statuses=sorted(s.value for s in statuses),
                    )
                return request

            if target == request.status:
                return request

            now = self._clock.now()
            completed_at = now if target == TaskStatus.COMPLETED else None
            applied = await self._requests.update_status(
                request_id,
                target,
                expected_status=request.status,
                expected_version=request.version,
                updated_at=now,
                completed_at=completed_at,
            )
            if not applied:
                # 读取后请求被其他写入方修改，重新读取并重算
                log.info("reverse_sync_conflict", request_id=request_id, attempt=attempt)
                continue

            log.info(
                "reverse_sync_applied",
                request_id=request_id,
                from_status=request.status,
                to_status=target,
                task_count=len(siblings),
            )
            updates: dict = {"status": target, "updated_at": now, "version": request.version + 1}
            if completed_at is not None:
                updates["completed_at"] = completed_at
            return request.model_copy(update=updates)

        raise SyncFailureError(
            f"GuestServiceRequest {request_id} kept changing after {_MAX_ATTEMPTS} attempts"
        )
