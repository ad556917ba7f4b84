"""Flow runner - executes EveryRow flows, handing IDs from task to task."""

import logging

from ..clients.everyrow import EveryRowClient, FlowError, create_group_payload, deep_rank_payload
from ..constants import DEFAULT_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL, TASK_TYPE_DEEP_RANK
from ..workflow import FlowWorkflow, Task, TaskType
from .base import RunnerCallbacks, RunnerResult, SequentialRunner

logger = logging.getLogger(__name__)


class FlowRunner(SequentialRunner):
    """
    Sequential runner for EveryRow flows.

    Each task reads the IDs produced by earlier tasks from workflow.context
    and stores its own output there. Polling is linear: a fixed number of
    attempts with a fixed interval.
    """

    def __init__(
        self,
        client: EveryRowClient,
        poll_attempts: int = DEFAULT_POLL_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.client = client
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    def _execute_task(self, task: Task, workflow: FlowWorkflow, cb: RunnerCallbacks, result: RunnerResult) -> bool:
        """Execute a single task based on its type."""
        ctx = workflow.context

        if task.task_type == TaskType.CREATE_SESSION:
            ctx["session_id"] = self.client.create_session(task.params["name"])
            logger.info(f"Session ID: {ctx['session_id']}")

        elif task.task_type == TaskType.CREATE_ARTIFACT:
            ctx["artifact_task_id"] = self.client.submit_task(
                ctx["session_id"], create_group_payload(task.params["data"]), "create artifact"
            )
            logger.info(f"Artifact task ID: {ctx['artifact_task_id']}")

        elif task.task_type == TaskType.WAIT_ARTIFACT:
            ctx["artifact_id"] = self.client.wait_for_artifact(
                ctx["artifact_task_id"], self.poll_attempts, self.poll_interval, cb.on_poll
            )
            logger.info(f"Artifact ID: {ctx['artifact_id']}")

        elif task.task_type == TaskType.SUBMIT_TASK:
            kind = task.params.get("kind")
            if kind != TASK_TYPE_DEEP_RANK:
                raise FlowError(f"Unsupported task kind: {kind}")
            payload = deep_rank_payload(
                task.params["task"],
                task.params["field_name"],
                task.params["field_type"],
                task.params["ascending"],
                ctx["artifact_id"],
            )
            ctx["task_id"] = self.client.submit_task(ctx["session_id"], payload, "create rank task")
            logger.info(f"Rank task ID: {ctx['task_id']}")

        elif task.task_type == TaskType.WAIT_TASK:
            ctx["status"] = self.client.wait_for_task(
                ctx["task_id"], self.poll_attempts, self.poll_interval, cb.on_poll
            )

        elif task.task_type == TaskType.FETCH_RESULT:
            ctx["result"] = self.client.get_task_result(ctx["task_id"])

        else:
            task.error = f"Unsupported task type: {task.task_type.value}"
            return False

        return True
