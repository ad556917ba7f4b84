"""Task definitions for workflows."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskStatus(Enum):
    """Status of a task in a workflow."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskType(Enum):
    """Types of tasks that can be in a workflow."""

    # Make.com deployment
    DEPLOY_BASE = "deploy_base"
    DEPLOY_COMMON = "deploy_common"
    DEPLOY_CONNECTION = "deploy_connection"
    REFRESH_CONNECTIONS = "refresh_connections"
    DEPLOY_MODULE = "deploy_module"
    DEPLOY_RPC = "deploy_rpc"
    # EveryRow flows
    CREATE_SESSION = "create_session"
    CREATE_ARTIFACT = "create_artifact"
    WAIT_ARTIFACT = "wait_artifact"
    SUBMIT_TASK = "submit_task"
    WAIT_TASK = "wait_task"
    FETCH_RESULT = "fetch_result"


@dataclass
class Task:
    """
    A unit of work in a workflow.

    Tasks are data - they describe what to do, not how to do it.
    The runner interprets tasks and makes the corresponding API calls.
    """

    id: str
    task_type: TaskType
    description: str
    # Input parameters for the action
    params: dict[str, Any] = field(default_factory=dict)
    # Dependencies (task IDs that must complete first)
    depends_on: list[str] = field(default_factory=list)
    # Runtime state (set by runner)
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: str | None = None


@dataclass
class Workflow:
    """
    An ordered collection of tasks to execute.

    Workflows define WHAT to do, not HOW to execute it.
    """

    name: str
    description: str
    tasks: list[Task] = field(default_factory=list)

    def add_task(self, task: Task) -> None:
        """Add a task to the workflow."""
        self.tasks.append(task)

    def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None
