"""Shared pytest fixtures for everyrow-make-toolkit tests."""

import json

import httpx
import pytest
from typer.testing import CliRunner

from everyrow_make.clients import EveryRowClient, MakeClient

ENV_VARS = (
    "MAKE_API_KEY",
    "MAKE_APP_ID",
    "MAKE_APP_VERSION",
    "MAKE_BASE_URL",
    "EVERYROW_API_KEY",
    "EVERYROW_BASE_URL",
    "ERM_APP_DIR",
    "ERM_CONFIG_DIR",
    "XDG_CONFIG_HOME",
)

RANK_MODULE = {
    "label": "Start Rank Task",
    "description": "Rank rows with an EveryRow deep_rank task",
    "type": "action",
    "connection": "everyrow-api",
    "communication": [
        {
            "url": "/sessions/create",
            "method": "POST",
            "body": {"name": "{{parameters.sessionName}}"},
            "response": {"temp": {"session_id": "{{body.session_id}}"}},
        },
        {
            "url": "/tasks",
            "method": "POST",
            "body": {
                "session_id": "{{temp.session_id}}",
                "payload": {"task_type": "deep_rank", "query": {"task": "{{parameters.task}}"}},
                "data": "{{parameters.inputData}}",
            },
        },
    ],
    "parameters": [
        {"name": "sessionName", "type": "text", "label": "Session Name", "default": "Make.com Rank"},
        {"name": "task", "type": "text", "label": "Task", "required": True},
        {"name": "inputData", "type": "array", "label": "Input Data", "spec": []},
        {"name": "ascending", "type": "boolean", "label": "Ascending"},
    ],
    "interface": [{"name": "task_id", "type": "text", "label": "Task ID"}],
}

STATUS_MODULE = {
    "label": "Get Task Status",
    "type": "search",
    "connection": "everyrow-api",
    "communication": [{"url": "/tasks/{{parameters.taskId}}/status", "method": "GET"}],
    "parameters": [{"name": "taskId", "type": "text", "label": "Task ID", "required": True}],
}

SESSIONS_RPC = {
    "label": "List Sessions",
    "connection": "everyrow-api",
    "communication": {"url": "/sessions", "method": "GET"},
    "parameters": [{"name": "limit", "type": "number"}],
}


def write_definition(path, data, comment=None):
    """Write a definition file, optionally starting with a // comment."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, indent=2)
    if comment:
        text = f"// {comment}\n{text}"
    path.write_text(text)
    return path


class FakeMakeApi:
    """In-memory Make.com SDK API served through httpx.MockTransport."""

    prefix = "/api/v2/sdk/apps"

    def __init__(self):
        self.connections: dict[str, str] = {}
        self.modules: set[str] = set()
        self.rpcs: set[str] = set()
        # path -> (status, body) returned for any method
        self.fail: dict[str, tuple[int, dict]] = {}
        self.requests: list[tuple[str, str, object, str]] = []

    def calls(self, method=None):
        return [(m, p) for m, p, _, _ in self.requests if method is None or m == method]

    def body_of(self, method, path):
        for m, p, body, _ in self.requests:
            if (m, p) == (method, path):
                return body
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(self.prefix)
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body, request.headers.get("content-type")))

        if path in self.fail:
            status, payload = self.fail[path]
            return httpx.Response(status, json=payload)

        parts = path.strip("/").split("/")
        if parts[1:] == ["connections"]:
            if request.method == "GET":
                items = [{"name": name, "label": label} for label, name in self.connections.items()]
                return httpx.Response(200, json={"appConnections": items})
            name = f"{parts[0].split('-')[0]}{len(self.connections) + 1}"
            self.connections[body["label"]] = name
            return httpx.Response(200, json={"appConnection": {"name": name, "label": body["label"]}})

        if len(parts) == 3 and parts[2] in ("modules", "rpcs"):
            store = self.modules if parts[2] == "modules" else self.rpcs
            key = "appModules" if parts[2] == "modules" else "appRpcs"
            if request.method == "GET":
                return httpx.Response(200, json={key: [{"name": name} for name in sorted(store)]})
            store.add(body["name"])
            return httpx.Response(201, json={key[:-1]: body})

        return httpx.Response(200, json={"changed": True})


class FakeEveryRowApi:
    """In-memory EveryRow API served through httpx.MockTransport."""

    def __init__(self):
        self.artifact_after = 1
        self.artifact_status = "pending"
        self.task_status = "completed"
        self.result = [{"name": "Anthropic", "rank_score": 0.9}]
        self.fail: dict[str, tuple[int, dict]] = {}
        self.polls: dict[str, int] = {}
        self.requests: list[tuple[str, str, object]] = []
        self.authorization = None

    def submitted(self):
        return [body["payload"] for method, path, body in self.requests if (method, path) == ("POST", "/tasks")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))
        self.authorization = request.headers.get("authorization")

        if path in self.fail:
            status, payload = self.fail[path]
            return httpx.Response(status, json=payload)

        if path == "/sessions/create":
            return httpx.Response(200, json={"session_id": "session-1"})

        if path == "/tasks":
            task_type = body["payload"]["task_type"]
            task_id = "artifact-task" if task_type == "create_group" else "rank-task"
            return httpx.Response(201, json={"task_id": task_id})

        if path.endswith("/status"):
            task_id = path.split("/")[2]
            self.polls[task_id] = self.polls.get(task_id, 0) + 1
            if task_id == "artifact-task":
                if self.polls[task_id] >= self.artifact_after:
                    return httpx.Response(200, json={"status": "completed", "artifact_id": "artifact-1"})
                return httpx.Response(200, json={"status": self.artifact_status})
            return httpx.Response(200, json={"status": self.task_status, "task_id": task_id})

        if path.endswith("/result"):
            return httpx.Response(200, json={"data": self.result})

        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run every test without real credentials, config files or .env files."""
    for name in ENV_VARS:
        # setenv first so monkeypatch restores (removes) values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("ERM_CONFIG_DIR", str(tmp_path / "no-config"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "no-xdg"))
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def app_bundle(tmp_path):
    """Create a temporary app directory with every component type."""
    app_dir = tmp_path / "app"
    write_definition(app_dir / "base.imljson", {"baseUrl": "https://app.everyrow.com/api"})
    write_definition(app_dir / "common.imljson", {"apiVersion": "v0"})
    write_definition(
        app_dir / "connections" / "everyrow.imljson",
        {"label": "EveryRow API", "type": "basic", "parameters": [{"name": "apiKey", "type": "password"}]},
    )
    write_definition(app_dir / "modules" / "startRankTask.imljson", RANK_MODULE, comment="deep_rank module")
    write_definition(app_dir / "modules" / "get-task-status.imljson", STATUS_MODULE)
    write_definition(app_dir / "rpcs" / "listSessions.imljson", SESSIONS_RPC)
    return app_dir


@pytest.fixture
def sample_config(tmp_path, app_bundle):
    """Create a sample config file pointing at the app bundle."""
    config_file = tmp_path / "erm.yaml"
    config_file.write_text(
        f"""
paths:
  app_dir: "{app_bundle}"

make:
  app_id: everyrow-test
  app_version: 2
  connection_aliases:
    everyrow: EveryRow API

everyrow:
  poll_attempts: 5
  poll_interval: 0.5

logging:
  level: WARNING
"""
    )
    return config_file


@pytest.fixture
def make_api():
    return FakeMakeApi()


@pytest.fixture
def make_client(make_api):
    """MakeClient talking to the in-memory Make.com API."""
    client = MakeClient(
        api_key="make-key",
        app_id="everyrow-test",
        app_version="1",
        transport=httpx.MockTransport(make_api.handler),
    )
    yield client
    client.close()


@pytest.fixture
def everyrow_api():
    return FakeEveryRowApi()


@pytest.fixture
def everyrow_client(everyrow_api):
    """EveryRowClient talking to the in-memory EveryRow API, without sleeping."""
    client = EveryRowClient(
        api_key="everyrow-key",
        transport=httpx.MockTransport(everyrow_api.handler),
        sleep=lambda seconds: None,
    )
    yield client
    client.close()
