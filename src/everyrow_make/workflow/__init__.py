"""
Workflow layer - Task and workflow definitions.

Workflows are DATA STRUCTURES that define what to do.
They do NOT execute anything - that's the runner's job.
"""

from .deploy import DeployWorkflow, create_deploy_workflow
from .flows import FlowWorkflow, create_parse_json_flow, create_rank_flow
from .tasks import Task, TaskStatus, TaskType, Workflow

__all__ = [
    "Task",
    "TaskStatus",
    "TaskType",
    "Workflow",
    "DeployWorkflow",
    "create_deploy_workflow",
    "FlowWorkflow",
    "create_rank_flow",
    "create_parse_json_flow",
]
