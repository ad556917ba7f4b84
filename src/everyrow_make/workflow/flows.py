"""
EveryRow flow factories - end-to-end task sequences against the EveryRow API.

Rank flow:
1. Create session
2. Create artifact from the input rows (create_group)
3. Wait for the artifact ID
4. Submit the deep_rank task
5. Optionally wait for the task and fetch its result
"""

import json
from dataclasses import dataclass, field
from typing import Any

from ..constants import TASK_TYPE_DEEP_RANK
from .tasks import Task, TaskType, Workflow


@dataclass
class FlowWorkflow(Workflow):
    """
    A flow plus the values its tasks hand to each other.

    The runner fills context with session_id, artifact_task_id,
    artifact_id, task_id and result as the tasks complete.
    """

    context: dict[str, Any] = field(default_factory=dict)


def _session_and_artifact(workflow: FlowWorkflow, session_name: str, data: Any) -> None:
    workflow.add_task(
        Task(
            id="session",
            task_type=TaskType.CREATE_SESSION,
            description="Create session",
            params={"name": session_name},
        )
    )
    workflow.add_task(
        Task(
            id="artifact",
            task_type=TaskType.CREATE_ARTIFACT,
            description="Create artifact",
            params={"data": data},
            depends_on=["session"],
        )
    )


def create_rank_flow(
    data: list[dict],
    task: str,
    field_name: str = "rank_score",
    field_type: str = "float",
    ascending: bool = False,
    session_name: str = "Test Rank Session",
    wait_for_result: bool = False,
) -> FlowWorkflow:
    """
    Create the rank flow exercising the startRankTask module's API calls.

    Args:
        data: Rows to rank (passed as an array, not a JSON string)
        task: Natural language ranking instruction
        field_name: Output field holding the score
        field_type: Type of the score field
        ascending: Sort order
        session_name: Name of the session to create
        wait_for_result: If True, also wait for the rank task and fetch its result

    Returns:
        FlowWorkflow ready for execution by a FlowRunner
    """
    workflow = FlowWorkflow(name="rank", description=f"Rank {len(data)} rows: {task}")

    _session_and_artifact(workflow, session_name, data)
    workflow.add_task(
        Task(
            id="wait_artifact",
            task_type=TaskType.WAIT_ARTIFACT,
            description="Wait for artifact",
            depends_on=["artifact"],
        )
    )
    workflow.add_task(
        Task(
            id="rank",
            task_type=TaskType.SUBMIT_TASK,
            description="Create rank task",
            params={
                "kind": TASK_TYPE_DEEP_RANK,
                "task": task,
                "field_name": field_name,
                "field_type": field_type,
                "ascending": ascending,
            },
            depends_on=["session", "wait_artifact"],
        )
    )

    if wait_for_result:
        workflow.add_task(
            Task(
                id="wait_rank",
                task_type=TaskType.WAIT_TASK,
                description="Wait for rank task",
                depends_on=["rank"],
            )
        )
        workflow.add_task(
            Task(
                id="result",
                task_type=TaskType.FETCH_RESULT,
                description="Fetch rank results",
                depends_on=["wait_rank"],
            )
        )

    return workflow


def create_parse_json_flow(json_string: str, session_name: str = "Test parseJSON Flow") -> FlowWorkflow:
    """
    Create a flow that submits rows given as a JSON string.

    Mirrors a module using {{parseJSON(parameters.inputData)}} on a text parameter.

    Raises:
        ValueError: If json_string is not valid JSON
    """
    data = json.loads(json_string)
    workflow = FlowWorkflow(name="parse-json", description="Create artifact from a JSON string")
    _session_and_artifact(workflow, session_name, data)
    return workflow
