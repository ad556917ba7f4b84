"""
EveryRow API client - sessions, tasks and status polling.

The task protocol is asynchronous:
1. Create a session (grouping container)
2. Submit a create_group task to turn rows into an artifact
3. Poll the task status until the artifact ID appears
4. Submit a processing task (e.g. deep_rank) against the artifact
5. Poll the task and fetch its result
"""

import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from ..constants import (
    DEFAULT_POLL_ATTEMPTS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    RANK_RESPONSE_MODEL,
    STATUS_COMPLETED,
    STATUS_FAILED,
    SUCCESS_STATUS_CODES,
    TASK_TYPE_CREATE_GROUP,
    TASK_TYPE_DEEP_RANK,
)
from .base import JsonClient, decode_body

logger = logging.getLogger(__name__)


class FlowError(RuntimeError):
    """An EveryRow call or polling sequence did not reach the expected state."""


@dataclass
class ApiResponse:
    """Status code and decoded body of an EveryRow response."""

    status: int
    data: Any

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATUS_CODES

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default


def create_group_payload(data: list | dict) -> dict:
    """Payload that turns input rows into an artifact."""
    return {
        "task_type": TASK_TYPE_CREATE_GROUP,
        "query": {"data_to_create": data},
    }


def deep_rank_payload(
    task: str,
    field_name: str,
    field_type: str,
    ascending: bool,
    artifact_id: str,
    context_artifacts: Iterable[str] = (),
) -> dict:
    """Payload for a deep_rank task scoring every row of an artifact."""
    return {
        "task_type": TASK_TYPE_DEEP_RANK,
        "query": {
            "task": task,
            "field_to_sort_by": field_name,
            "ascending_order": ascending,
            "response_schema": {
                "_model_name": RANK_RESPONSE_MODEL,
                field_name: {"type": field_type, "optional": False},
            },
        },
        "input_artifacts": [artifact_id],
        "context_artifacts": list(context_artifacts),
    }


class EveryRowClient(JsonClient):
    """Client for the EveryRow REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://app.everyrow.com/api",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key
        self.sleep = sleep

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def request(self, method: str, endpoint: str, body: dict | None = None) -> ApiResponse:
        """Send a request; HTTP errors are returned, not raised."""
        response = self.send(method, endpoint, body)
        return ApiResponse(status=response.status_code, data=decode_body(response.text))

    def _expect_ok(self, response: ApiResponse, what: str) -> ApiResponse:
        if not response.ok:
            raise FlowError(f"Failed to {what}: {json.dumps(response.data)}")
        return response

    def create_session(self, name: str) -> str:
        """Create a session and return its ID."""
        response = self._expect_ok(self.request("POST", "/sessions/create", {"name": name}), "create session")
        return response.get("session_id")

    def submit_task(self, session_id: str, payload: dict, what: str = "submit task") -> str:
        """Submit a task in a session and return the task ID."""
        response = self._expect_ok(
            self.request("POST", "/tasks", {"session_id": session_id, "payload": payload}),
            what,
        )
        return response.get("task_id")

    def get_task_status(self, task_id: str) -> dict:
        response = self.request("GET", f"/tasks/{task_id}/status")
        return response.data if isinstance(response.data, dict) else {}

    def get_task_result(self, task_id: str) -> Any:
        response = self._expect_ok(self.request("GET", f"/tasks/{task_id}/result"), "fetch task result")
        return response.data

    def wait_for_artifact(
        self,
        task_id: str,
        attempts: int = DEFAULT_POLL_ATTEMPTS,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_poll: Callable[[str, int, int], None] | None = None,
    ) -> str:
        """
        Poll a create_group task until it reports an artifact ID.

        Raises:
            FlowError: If the task fails or no artifact appears within the attempts
        """
        for attempt in range(1, attempts + 1):
            if on_poll:
                on_poll(task_id, attempt, attempts)
            status = self.get_task_status(task_id)
            if status.get("artifact_id"):
                return status["artifact_id"]
            if status.get("status") == STATUS_FAILED:
                raise FlowError(f"Artifact creation failed: {json.dumps(status)}")
            if attempt < attempts:
                self.sleep(interval)

        raise FlowError("Timeout waiting for artifact")

    def wait_for_task(
        self,
        task_id: str,
        attempts: int = DEFAULT_POLL_ATTEMPTS,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_poll: Callable[[str, int, int], None] | None = None,
    ) -> dict:
        """
        Poll a task until it completes.

        Raises:
            FlowError: If the task fails or does not complete within the attempts
        """
        for attempt in range(1, attempts + 1):
            if on_poll:
                on_poll(task_id, attempt, attempts)
            status = self.get_task_status(task_id)
            state = status.get("status")
            if state == STATUS_COMPLETED:
                return status
            if state == STATUS_FAILED:
                raise FlowError(f"Task {task_id} failed: {json.dumps(status)}")
            if attempt < attempts:
                self.sleep(interval)

        raise FlowError(f"Timeout waiting for task {task_id}")
