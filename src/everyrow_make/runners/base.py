"""Base runner classes and protocols."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..workflow.tasks import Task, TaskStatus

if TYPE_CHECKING:
    from ..workflow import Workflow

logger = logging.getLogger(__name__)


@dataclass
class ComponentResult:
    """Outcome of deploying one app component."""

    component: str
    success: bool
    error: str | None = None


@dataclass
class RunnerResult:
    """Result of running a workflow."""

    success: bool
    workflow_name: str
    tasks_completed: int = 0
    tasks_failed: int = 0
    tasks_skipped: int = 0
    # Deploy-specific
    components: list[ComponentResult] = field(default_factory=list)
    planned_calls: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ComponentResult]:
        return [c for c in self.components if c.success]

    @property
    def failed(self) -> list[ComponentResult]:
        return [c for c in self.components if not c.success]


@dataclass
class RunnerCallbacks:
    """
    Callbacks for runner progress reporting.

    Allows CLI to display progress without coupling runner to Rich/UI.
    All callbacks are optional - if None, no callback is made.
    """

    # Workflow lifecycle
    on_workflow_start: Callable[[str, int], None] | None = None  # name, total_tasks
    on_workflow_complete: Callable[[RunnerResult], None] | None = None

    # Task lifecycle
    on_task_start: Callable[[str, str], None] | None = None  # task_id, description
    on_task_complete: Callable[[str, bool], None] | None = None  # task_id, success

    # Deploy progress
    on_component_complete: Callable[[ComponentResult], None] | None = None

    # Polling progress
    on_poll: Callable[[str, int, int], None] | None = None  # task_id, attempt, max_attempts


class SequentialRunner:
    """
    Executes workflow tasks one at a time in order.

    A task whose dependencies did not complete is skipped. Exceptions
    raised by a task mark it failed; the run continues with the next task.
    Subclasses implement _execute_task.
    """

    def run(self, workflow: Workflow, callbacks: RunnerCallbacks | None = None) -> RunnerResult:
        cb = callbacks or RunnerCallbacks()

        if cb.on_workflow_start:
            cb.on_workflow_start(workflow.name, len(workflow.tasks))

        result = RunnerResult(success=True, workflow_name=workflow.name)

        for task in workflow.tasks:
            deps_met = all(
                workflow.get_task(dep_id).status == TaskStatus.COMPLETED
                for dep_id in task.depends_on
                if workflow.get_task(dep_id) is not None
            )

            if not deps_met:
                task.status = TaskStatus.SKIPPED
                result.tasks_skipped += 1
                self._on_skipped(task, result, cb)
                continue

            if cb.on_task_start:
                cb.on_task_start(task.id, task.description)

            task.status = TaskStatus.RUNNING

            try:
                success = self._execute_task(task, workflow, cb, result)
            except Exception as e:
                logger.debug(f"Task {task.id} raised", exc_info=True)
                task.error = str(e)
                success = False

            if success:
                task.status = TaskStatus.COMPLETED
                result.tasks_completed += 1
            else:
                task.status = TaskStatus.FAILED
                result.tasks_failed += 1
                result.success = False
                result.errors.append(f"{task.id}: {task.error or 'failed'}")

            self._on_finished(task, success, result, cb)

            if cb.on_task_complete:
                cb.on_task_complete(task.id, success)

        if cb.on_workflow_complete:
            cb.on_workflow_complete(result)

        return result

    def _execute_task(self, task: Task, workflow: Workflow, cb: RunnerCallbacks, result: RunnerResult) -> bool:
        raise NotImplementedError

    def _on_skipped(self, task: Task, result: RunnerResult, cb: RunnerCallbacks) -> None:
        """Hook for subclasses; called when a task is skipped."""

    def _on_finished(self, task: Task, success: bool, result: RunnerResult, cb: RunnerCallbacks) -> None:
        """Hook for subclasses; called after a task ran."""
