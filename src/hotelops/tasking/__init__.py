"""hotelops Tasking -- 任务分派、状态守卫与请求同步"""

from .assignment import AssignmentEngine
from .config import TaskingConfig, load_tasking_config
from .container import TaskingContainer, create_container
from .event_hub import TaskEventHub
from .handoff import HandoffEngine
from .intake import RequestIntakeBridge
from .mapper import DeptCategory, get_canonical_department, map_request_type_to_dept_category
from .request_service import RequestService
from .reverse_sync import ReverseSyncEngine, compute_target_status
from .scheduler import AutoAssignmentScheduler, SweepSummary
from .selection import (
    LeastLoadedSelection,
    RandomSelection,
    RoundRobinSelection,
    StaffSelectionStrategy,
    build_selection_strategy,
)
from .status_guard import StatusTransitionGuard
from .task_service import BulkAssignResult, PendingTaskView, TaskService

__all__ = [
    "AssignmentEngine",
    "AutoAssignmentScheduler",
    "BulkAssignResult",
    "DeptCategory",
    "HandoffEngine",
    "LeastLoadedSelection",
    "PendingTaskView",
    "RandomSelection",
    "RequestIntakeBridge",
    "RequestService",
    "ReverseSyncEngine",
    "RoundRobinSelection",
    "StaffSelectionStrategy",
    "StatusTransitionGuard",
    "SweepSummary",
    "TaskEventHub",
    "TaskService",
    "TaskingConfig",
    "TaskingContainer",
    "build_selection_strategy",
    "compute_target_status",
    "create_container",
    "get_canonical_department",
    "load_tasking_config",
    "map_request_type_to_dept_category",
]
