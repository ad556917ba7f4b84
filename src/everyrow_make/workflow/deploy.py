"""
Deploy workflow factory - Creates the Make.com app deployment workflow.

Order:
1. Base (app-wide settings)
2. Common (shared secrets/config)
3. Connections (created when missing)
4. Refresh the connection label -> name map
5. Modules (created when missing, then sections uploaded)
6. RPCs (created when missing, then sections uploaded)
"""

from dataclasses import dataclass

from ..bundle import AppBundle
from .tasks import Task, TaskType, Workflow


@dataclass
class DeployWorkflow(Workflow):
    """The deploy workflow with its target app."""

    bundle: AppBundle | None = None
    app_id: str = ""
    app_version: str = "1"


def create_deploy_workflow(bundle: AppBundle, app_id: str, app_version: str = "1") -> DeployWorkflow:
    """
    Create a deploy workflow for an app bundle.

    Components missing from the bundle get no task.

    Args:
        bundle: Loaded app bundle
        app_id: Make.com app name/ID
        app_version: Make.com app version

    Returns:
        DeployWorkflow ready for execution by a DeployRunner
    """
    workflow = DeployWorkflow(
        name="deploy",
        description=f"Deploy {bundle.root.name} to {app_id} v{app_version}",
        bundle=bundle,
        app_id=app_id,
        app_version=str(app_version),
    )

    if bundle.base is not None:
        workflow.add_task(
            Task(
                id="base",
                task_type=TaskType.DEPLOY_BASE,
                description="Deploy base",
                params={"definition": bundle.base},
            )
        )

    if bundle.common is not None:
        workflow.add_task(
            Task(
                id="common",
                task_type=TaskType.DEPLOY_COMMON,
                description="Deploy common",
                params={"definition": bundle.common},
            )
        )

    for conn in bundle.connections:
        workflow.add_task(
            Task(
                id=f"connection:{conn.label}",
                task_type=TaskType.DEPLOY_CONNECTION,
                description=f"Deploy connection {conn.label}",
                params={"name": conn.name, "label": conn.label, "definition": conn.definition},
            )
        )

    workflow.add_task(
        Task(
            id="connection-map",
            task_type=TaskType.REFRESH_CONNECTIONS,
            description="Refresh connection mapping",
        )
    )

    for module in bundle.modules:
        workflow.add_task(
            Task(
                id=f"module:{module.name}",
                task_type=TaskType.DEPLOY_MODULE,
                description=f"Deploy module {module.name}",
                params={"name": module.name, "definition": module.definition},
                depends_on=["connection-map"],
            )
        )

    for rpc in bundle.rpcs:
        workflow.add_task(
            Task(
                id=f"rpc:{rpc.name}",
                task_type=TaskType.DEPLOY_RPC,
                description=f"Deploy RPC {rpc.name}",
                params={"name": rpc.name, "definition": rpc.definition},
                depends_on=["connection-map"],
            )
        )

    return workflow
