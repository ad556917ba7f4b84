"""Tests for CLI commands using Typer's CliRunner."""

import json

import pytest

from everyrow_make.cli import app


def _text(result):
    """CLI output with Rich line wrapping collapsed to single spaces."""
    return " ".join(result.output.split())


@pytest.fixture
def patched_make_client(monkeypatch, make_client):
    """Route deploy through the in-memory Make.com API."""
    monkeypatch.setenv("MAKE_API_KEY", "make-key")
    monkeypatch.setattr("everyrow_make.cli.create_make_client", lambda config: make_client)
    return make_client


@pytest.fixture
def patched_everyrow_client(monkeypatch, everyrow_client):
    """Route smoke through the in-memory EveryRow API."""
    monkeypatch.setenv("EVERYROW_API_KEY", "everyrow-key")
    monkeypatch.setattr("everyrow_make.cli.create_everyrow_client", lambda config: everyrow_client)
    return everyrow_client


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_version_option(self, cli_runner):
        """Test --version displays version."""
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in _text(result)

    def test_help_option(self, cli_runner):
        """Test --help lists the commands."""
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "EveryRow Make Toolkit" in _text(result)
        for command in ("deploy", "validate", "check-params", "render", "list-modules", "smoke"):
            assert command in _text(result)


class TestDeployCommand:
    """Tests for deploy command."""

    def test_dry_run(self, cli_runner, app_bundle):
        """Test dry run needs no credentials and lists planned calls."""
        result = cli_runner.invoke(app, ["deploy", str(app_bundle), "--app-id", "everyrow-test", "--dry-run"])

        assert result.exit_code == 0
        assert "Planned API calls" in _text(result)
        assert "PUT /everyrow-test/1/base" in _text(result)
        assert "Dry run" in _text(result)

    def test_missing_credentials(self, cli_runner, app_bundle):
        result = cli_runner.invoke(app, ["deploy", str(app_bundle)])

        assert result.exit_code == 1
        assert "MAKE_API_KEY not configured" in _text(result)
        assert "MAKE_APP_ID not configured" in _text(result)

    def test_missing_app_dir(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["deploy", str(tmp_path / "nope"), "--app-id", "x", "--dry-run"])

        assert result.exit_code == 1
        assert "App directory not found" in _text(result)

    def test_invalid_definition(self, cli_runner, app_bundle):
        (app_bundle / "modules" / "broken.imljson").write_text("{")

        result = cli_runner.invoke(app, ["deploy", str(app_bundle), "--app-id", "x", "--dry-run"])

        assert result.exit_code == 1
        assert "JSON parse error" in _text(result)

    def test_deploy(self, cli_runner, app_bundle, make_api, patched_make_client):
        result = cli_runner.invoke(app, ["deploy", str(app_bundle), "--app-id", "everyrow-test"])

        assert result.exit_code == 0
        assert "Succeeded: 6" in _text(result)
        assert "Deploy complete!" in _text(result)
        assert make_api.modules == {"get_task_status", "startRankTask"}

    def test_deploy_failure(self, cli_runner, app_bundle, make_api, patched_make_client):
        make_api.fail["/everyrow-test/1/rpcs/listSessions/api"] = (400, {"message": "Invalid"})

        result = cli_runner.invoke(app, ["deploy", str(app_bundle), "--app-id", "everyrow-test"])

        assert result.exit_code == 1
        assert "Succeeded: 5" in _text(result)
        assert "Failed: 1" in _text(result)
        assert "rpc:listSessions" in _text(result)

    def test_config_file(self, cli_runner, sample_config):
        """Test app dir and app ID come from the config file."""
        result = cli_runner.invoke(app, ["deploy", "--config", str(sample_config), "--dry-run"])

        assert result.exit_code == 0
        assert "PUT /everyrow-test/2/base" in _text(result)


class TestValidateCommand:
    """Tests for validate command."""

    def test_valid(self, cli_runner, app_bundle):
        result = cli_runner.invoke(app, ["validate", str(app_bundle)])

        assert result.exit_code == 0
        assert "Passed: 2" in _text(result)
        assert "Failed: 0" in _text(result)

    def test_invalid(self, cli_runner, app_bundle):
        (app_bundle / "modules" / "broken.imljson").write_text('{"label": "Broken"}')

        result = cli_runner.invoke(app, ["validate", str(app_bundle)])

        assert result.exit_code == 1
        assert "Failed: 1" in _text(result)

    def test_no_modules(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["validate", str(tmp_path)])

        assert result.exit_code == 0
        assert "No module definitions found" in _text(result)


class TestCheckParamsCommand:
    """Tests for check-params command."""

    def test_array_parameter(self, cli_runner, app_bundle):
        result = cli_runner.invoke(app, ["check-params", str(app_bundle)])

        assert result.exit_code == 0
        assert "=== Testing: startRankTask ===" in _text(result)
        assert "Parameter: inputData (type: array)" in _text(result)
        assert "Input accepted" in _text(result)
        assert "Input rejected" in _text(result)
        assert "expects array but got string" in _text(result)
        assert "Recommendations" in _text(result)

    def test_text_parameter_rejects_collection(self, cli_runner, app_bundle):
        module = json.loads((app_bundle / "modules" / "get-task-status.imljson").read_text())
        module["parameters"] = [{"name": "inputData", "type": "text"}]
        (app_bundle / "modules" / "get-task-status.imljson").write_text(json.dumps(module))

        result = cli_runner.invoke(app, ["check-params", str(app_bundle), "--prefix", "get"])

        assert result.exit_code == 0
        assert "=== Testing: get-task-status ===" in _text(result)
        assert "toString" in _text(result)

    def test_array_definition_reported(self, cli_runner, app_bundle):
        (app_bundle / "modules" / "startList.imljson").write_text("[]")

        result = cli_runner.invoke(app, ["check-params", str(app_bundle)])

        assert result.exit_code == 0
        assert "definition must be a JSON object" in _text(result)
        assert "=== Testing: startRankTask ===" in _text(result)

    def test_no_matching_modules(self, cli_runner, app_bundle):
        result = cli_runner.invoke(app, ["check-params", str(app_bundle), "--prefix", "zzz"])

        assert result.exit_code == 0
        assert "No modules matching" in _text(result)


class TestRenderCommand:
    """Tests for render command."""

    def test_render(self, cli_runner, app_bundle):
        module = app_bundle / "modules" / "startRankTask.imljson"

        result = cli_runner.invoke(
            app, ["render", str(module), "-p", "task=Rank by size", "-p", 'inputData=[{"name": "OpenAI"}]']
        )

        assert result.exit_code == 0
        assert "Start Rank Task" in _text(result)
        assert "Rank by size" in _text(result)
        assert "Make.com Rank" in _text(result)
        assert '"name": "OpenAI"' in _text(result)

    def test_missing_array_parameter(self, cli_runner, app_bundle):
        module = app_bundle / "modules" / "startRankTask.imljson"

        result = cli_runner.invoke(app, ["render", str(module), "-p", "task=Rank"])

        assert result.exit_code == 1
        assert "expects array" in _text(result)

    def test_collection_into_text(self, cli_runner, app_bundle):
        module = app_bundle / "modules" / "get-task-status.imljson"

        result = cli_runner.invoke(app, ["render", str(module), "-p", "taskId=[1, 2]"])

        assert result.exit_code == 1
        assert "toString()" in _text(result)

    def test_array_definition(self, cli_runner, tmp_path):
        module = tmp_path / "list.imljson"
        module.write_text('[{"label": "Not a module"}]')

        result = cli_runner.invoke(app, ["render", str(module)])

        assert result.exit_code == 1
        assert "Error:" in _text(result)
        assert "definition must be a JSON object" in _text(result)

    def test_parameter_without_name(self, cli_runner, tmp_path):
        module = tmp_path / "nameless.imljson"
        module.write_text(json.dumps({"label": "Nameless", "parameters": [{"type": "text"}], "communication": []}))

        result = cli_runner.invoke(app, ["render", str(module)])

        assert result.exit_code == 1
        assert "Parameter definition without a name" in _text(result)

    def test_bad_assignment(self, cli_runner, app_bundle):
        module = app_bundle / "modules" / "get-task-status.imljson"

        result = cli_runner.invoke(app, ["render", str(module), "-p", "taskId"])

        assert result.exit_code == 2

    def test_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["render", str(tmp_path / "missing.imljson")])
        assert result.exit_code == 2


class TestListModulesCommand:
    """Tests for list-modules command."""

    def test_list(self, cli_runner, app_bundle):
        result = cli_runner.invoke(app, ["list-modules", str(app_bundle)])

        assert result.exit_code == 0
        assert "startRankTask" in _text(result)
        assert "get_task_status" in _text(result)
        assert "search" in _text(result)

    def test_empty(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["list-modules", str(tmp_path)])

        assert result.exit_code == 0
        assert "No modules defined" in _text(result)


class TestSmokeCommand:
    """Tests for smoke command."""

    def test_missing_api_key(self, cli_runner, app_bundle):
        result = cli_runner.invoke(app, ["smoke", str(app_bundle)])

        assert result.exit_code == 1
        assert "EVERYROW_API_KEY not configured" in _text(result)

    def test_all_pass(self, cli_runner, app_bundle, patched_everyrow_client):
        result = cli_runner.invoke(app, ["smoke", str(app_bundle)])

        assert result.exit_code == 0
        assert "api:startRankTask" in _text(result)
        assert "Passed: 4" in _text(result)
        assert "Failed: 0" in _text(result)

    def test_api_failure(self, cli_runner, app_bundle, everyrow_api, patched_everyrow_client):
        everyrow_api.fail["/sessions/create"] = (401, {"detail": "Invalid token"})

        result = cli_runner.invoke(app, ["smoke", str(app_bundle)])

        assert result.exit_code == 1
        assert "Failed: 2" in _text(result)

    def test_api_key_from_env_file(self, cli_runner, app_bundle, tmp_path, monkeypatch, everyrow_client):
        env_file = tmp_path / "test.env"
        env_file.write_text("EVERYROW_API_KEY=from-file\n")
        monkeypatch.setattr("everyrow_make.cli.create_everyrow_client", lambda config: everyrow_client)

        result = cli_runner.invoke(app, ["smoke", str(app_bundle), "--env-file", str(env_file)])

        assert result.exit_code == 0
        assert "Loaded credentials" in _text(result)
