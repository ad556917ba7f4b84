"""Deploy runner - pushes an app bundle to the Make.com SDK API."""

from __future__ import annotations

import logging
from typing import Any

from ..clients.make import MakeClient, module_type_id
from ..constants import (
    DEFAULT_CONNECTION_ALIASES,
    DEFAULT_CONNECTION_TYPE,
    MODULE_SECTIONS,
    RPC_SECTIONS,
)
from ..workflow import DeployWorkflow, Task, TaskType
from .base import ComponentResult, RunnerCallbacks, RunnerResult, SequentialRunner

logger = logging.getLogger(__name__)


def resolve_connection(
    reference: str | None,
    connection_map: dict[str, str],
    aliases: dict[str, str] | None = None,
) -> str | None:
    """
    Resolve a module's connection reference to a Make.com connection name.

    The reference is first treated as a label (through the alias table),
    then as an existing Make.com connection name.

    Examples:
        "everyrow-api" with {"EveryRow API": "everyrow4"} -> "everyrow4"
        "everyrow4"    with {"EveryRow API": "everyrow4"} -> "everyrow4"
        "unknown"                                          -> None
    """
    if not reference:
        return None

    label = (aliases or {}).get(reference, reference)
    if label in connection_map:
        return connection_map[label]

    if reference in connection_map.values():
        return reference

    return None


class DeployRunner(SequentialRunner):
    """
    Executes a deploy workflow, one component per task.

    A failing component is recorded and deployment continues with the next.
    Existing connections, modules and RPCs are reused; their sections are
    always re-uploaded.
    """

    def __init__(
        self,
        client: MakeClient | None = None,
        dry_run: bool = False,
        connection_aliases: dict[str, str] | None = None,
    ):
        """
        Initialize the runner.

        Args:
            client: Make.com client (may be None in dry run)
            dry_run: If True, record the calls that would be made instead of making them
            connection_aliases: Local connection reference -> connection label
        """
        if client is None and not dry_run:
            raise ValueError("A MakeClient is required unless dry_run is set")
        self.client = client
        self.dry_run = dry_run
        self.connection_aliases = (
            dict(DEFAULT_CONNECTION_ALIASES) if connection_aliases is None else connection_aliases
        )
        self.connection_map: dict[str, str] = {}
        self._existing_connections: dict[str, str] | None = None
        self._existing_modules: set[str] | None = None
        self._existing_rpcs: set[str] | None = None
        self._workflow: DeployWorkflow | None = None

    def run(self, workflow: DeployWorkflow, callbacks: RunnerCallbacks | None = None) -> RunnerResult:
        """
        Execute a deploy workflow.

        Args:
            workflow: The DeployWorkflow to execute
            callbacks: Optional callbacks for progress reporting

        Returns:
            RunnerResult with one ComponentResult per component
        """
        self.connection_map = {}
        self._existing_connections = None
        self._existing_modules = None
        self._existing_rpcs = None
        self._workflow = workflow
        return super().run(workflow, callbacks)

    def _call(self, result: RunnerResult, description: str, method: str, *args) -> Any:
        """Call a MakeClient method, or only record the request in dry run."""
        if self.dry_run:
            result.planned_calls.append(description)
            logger.info(f"[DRY RUN] {description}")
            return None
        return getattr(self.client, method)(*args)

    def _execute_task(self, task: Task, workflow: DeployWorkflow, cb: RunnerCallbacks, result: RunnerResult) -> bool:
        """Execute a single task based on its type."""
        if task.task_type == TaskType.DEPLOY_BASE:
            return self._deploy_base(task, result)

        elif task.task_type == TaskType.DEPLOY_COMMON:
            return self._deploy_common(task, result)

        elif task.task_type == TaskType.DEPLOY_CONNECTION:
            return self._deploy_connection(task, result)

        elif task.task_type == TaskType.REFRESH_CONNECTIONS:
            return self._refresh_connections(workflow)

        elif task.task_type == TaskType.DEPLOY_MODULE:
            return self._deploy_module(task, result)

        elif task.task_type == TaskType.DEPLOY_RPC:
            return self._deploy_rpc(task, result)

        task.error = f"Unsupported task type: {task.task_type.value}"
        return False

    def _on_finished(self, task: Task, success: bool, result: RunnerResult, cb: RunnerCallbacks) -> None:
        if task.task_type == TaskType.REFRESH_CONNECTIONS:
            return
        component = ComponentResult(component=task.id, success=success, error=None if success else task.error)
        result.components.append(component)
        if cb.on_component_complete:
            cb.on_component_complete(component)

    def _on_skipped(self, task: Task, result: RunnerResult, cb: RunnerCallbacks) -> None:
        component = ComponentResult(
            component=task.id,
            success=False,
            error="skipped: connection mapping unavailable",
        )
        result.components.append(component)
        result.success = False
        if cb.on_component_complete:
            cb.on_component_complete(component)

    # App sections

    def _version_path(self) -> str:
        return f"/{self._workflow.app_id}/{self._workflow.app_version}"

    def _deploy_base(self, task: Task, result: RunnerResult) -> bool:
        self._call(result, f"PUT {self._version_path()}/base", "put_base", task.params["definition"])
        return True

    def _deploy_common(self, task: Task, result: RunnerResult) -> bool:
        self._call(result, f"PUT {self._version_path()}/common", "put_common", task.params["definition"])
        return True

    # Connections

    def _connections(self) -> dict[str, str]:
        if self._existing_connections is None:
            self._existing_connections = {} if self.dry_run else self.client.list_connections()
        return self._existing_connections

    def _deploy_connection(self, task: Task, result: RunnerResult) -> bool:
        label = task.params["label"]
        definition = task.params["definition"]

        remote_name = self._connections().get(label)
        if remote_name:
            logger.info(f"Connection exists: {remote_name}")
        else:
            logger.info(f"Creating connection: {label}")
            remote_name = self._call(
                result,
                f"POST /{self._workflow.app_id}/connections ({label})",
                "create_connection",
                label,
                definition.get("type") or DEFAULT_CONNECTION_TYPE,
            )
            if remote_name:
                self._connections()[label] = remote_name
                logger.info(f"Created connection with name: {remote_name}")

        # Connection parameters/api cannot be uploaded through the SDK API
        logger.info("Skipping connection code deployment (must be configured in Make.com UI)")
        return True

    def _refresh_connections(self, workflow: DeployWorkflow) -> bool:
        if self.dry_run:
            # Remote names are generated by Make.com; use local names as placeholders
            self.connection_map = {conn.label: conn.name for conn in workflow.bundle.connections}
        else:
            self.connection_map = self.client.list_connections()
        logger.info(f"Connection mapping: {self.connection_map}")
        return True

    # Modules

    def _modules(self) -> set[str]:
        if self._existing_modules is None:
            self._existing_modules = set() if self.dry_run else self.client.list_modules()
        return self._existing_modules

    def _deploy_module(self, task: Task, result: RunnerResult) -> bool:
        name = task.params["name"]
        config = task.params["definition"]

        connection = resolve_connection(config.get("connection"), self.connection_map, self.connection_aliases)
        if config.get("connection"):
            logger.info(f"Connection reference: {config['connection']} -> {connection or 'null'}")

        if name in self._modules():
            logger.info(f"Module exists: {name}")
        else:
            module_type = config.get("type")
            logger.info(f"Creating module: {name} (type: {module_type or 'action'})")
            self._call(
                result,
                f"POST {self._version_path()}/modules ({name})",
                "create_module",
                name,
                config.get("label") or name,
                config.get("description") or "",
                module_type_id(module_type),
                connection,
            )
            self._modules().add(name)

        for key, section in MODULE_SECTIONS.items():
            if config.get(key) is not None:
                self._call(
                    result,
                    f"PUT {self._version_path()}/modules/{name}/{section}",
                    "put_module_section",
                    name,
                    section,
                    config[key],
                )
        return True

    # RPCs

    def _rpcs(self) -> set[str]:
        if self._existing_rpcs is None:
            self._existing_rpcs = set() if self.dry_run else self.client.list_rpcs()
        return self._existing_rpcs

    def _deploy_rpc(self, task: Task, result: RunnerResult) -> bool:
        name = task.params["name"]
        config = task.params["definition"]

        connection = resolve_connection(config.get("connection"), self.connection_map, self.connection_aliases)
        if config.get("connection"):
            logger.info(f"RPC connection reference: {config['connection']} -> {connection or 'null'}")

        if name in self._rpcs():
            logger.info(f"RPC exists: {name}")
        else:
            logger.info(f"Creating RPC: {name}")
            self._call(
                result,
                f"POST {self._version_path()}/rpcs ({name})",
                "create_rpc",
                name,
                config.get("label") or name,
                connection,
            )
            self._rpcs().add(name)

        for key, section in RPC_SECTIONS.items():
            if config.get(key) is not None:
                self._call(
                    result,
                    f"PUT {self._version_path()}/rpcs/{name}/{section}",
                    "put_rpc_section",
                    name,
                    section,
                    config[key],
                )
        return True
