"""
Smoke tests - checks the module definitions and runs real EveryRow calls.

1. Module JSON structure
2. Rank task API flow (what startRankTask sends to EveryRow)
3. parseJSON flow (rows mapped as a JSON string)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .bundle import BundleError, read_component
from .checker import CheckStatus, check_bundle
from .clients.everyrow import EveryRowClient
from .constants import MODULES_DIR, RANK_MODULE_FILE
from .runners import FlowRunner, RunnerCallbacks
from .workflow import create_parse_json_flow, create_rank_flow

logger = logging.getLogger(__name__)

TEST_DATA = [
    {"name": "OpenAI", "description": "AI research company"},
    {"name": "Stripe", "description": "Payment processing platform"},
    {"name": "Anthropic", "description": "AI safety company"},
]

RANK_INPUT = {
    "session_name": "Test Rank Session",
    "task": "Rank by relevance to AI",
    "field_name": "rank_score",
    "field_type": "float",
    "ascending": False,
}


@dataclass
class SmokeResult:
    """Outcome of one smoke test."""

    name: str
    passed: bool
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class SmokeReport:
    results: list[SmokeResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> list[SmokeResult]:
        return [r for r in self.results if not r.passed]


def structure_tests(app_dir: Path) -> list[SmokeResult]:
    """One result per module: required fields and communication array."""
    report = check_bundle(app_dir)
    return [
        SmokeResult(
            name=check.name,
            passed=check.status != CheckStatus.FAIL,
            error=None if check.status != CheckStatus.FAIL else check.details,
        )
        for check in report.checks
        if check.name.startswith("structure:")
    ]


def input_parameter_note(module: dict) -> tuple[str | None, str]:
    """
    Describe how the inputData parameter will treat a mapped collection.

    Returns:
        (parameter type, note)
    """
    parameters = module.get("parameters") or []
    param = next((p for p in parameters if isinstance(p, dict) and p.get("name") == "inputData"), None)
    param_type = param.get("type") if param else None

    if param_type == "text":
        return param_type, (
            'inputData is "text" type - will fail if user maps a collection directly; '
            "user must use {{toString(...)}} to convert collection to JSON string"
        )
    if param_type == "array":
        return param_type, 'inputData is "array" type - should accept collections'
    return param_type, "inputData parameter not found" if param is None else f"inputData is {param_type!r} type"


def _flow_result(name: str, runner: FlowRunner, workflow, callbacks: RunnerCallbacks | None) -> SmokeResult:
    result = runner.run(workflow, callbacks)
    details = {k: v for k, v in workflow.context.items() if k != "status"}
    if result.success:
        return SmokeResult(name=name, passed=True, details=details)

    failed = next((t for t in workflow.tasks if t.error), None)
    error = failed.error if failed else "; ".join(result.errors)
    return SmokeResult(name=name, passed=False, error=error, details=details)


def rank_flow_test(
    app_dir: Path,
    runner: FlowRunner,
    wait_for_result: bool = False,
    callbacks: RunnerCallbacks | None = None,
) -> SmokeResult:
    """Run the startRankTask API flow with TEST_DATA passed as an array."""
    name = "api:startRankTask"
    module_path = app_dir / MODULES_DIR / RANK_MODULE_FILE

    try:
        module = read_component(module_path)
    except BundleError as e:
        return SmokeResult(name=name, passed=False, error=str(e))

    param_type, note = input_parameter_note(module)
    logger.info(note)

    workflow = create_rank_flow(
        TEST_DATA,
        RANK_INPUT["task"],
        field_name=RANK_INPUT["field_name"],
        field_type=RANK_INPUT["field_type"],
        ascending=RANK_INPUT["ascending"],
        session_name=RANK_INPUT["session_name"],
        wait_for_result=wait_for_result,
    )
    result = _flow_result(name, runner, workflow, callbacks)
    result.details["input_data_type"] = param_type
    return result


def parse_json_flow_test(runner: FlowRunner, callbacks: RunnerCallbacks | None = None) -> SmokeResult:
    """Run the artifact flow with TEST_DATA as a JSON string, as parseJSON() would see it."""
    json_string = json.dumps(TEST_DATA)
    logger.info(f"Input (as JSON string): {json_string[:50]}...")
    workflow = create_parse_json_flow(json_string)
    return _flow_result("api:parseJsonFlow", runner, workflow, callbacks)


def run_smoke_tests(
    app_dir: Path,
    client: EveryRowClient,
    poll_attempts: int,
    poll_interval: float,
    wait_for_result: bool = False,
    callbacks: RunnerCallbacks | None = None,
) -> SmokeReport:
    """Run all smoke tests in order and collect the results."""
    runner = FlowRunner(client, poll_attempts=poll_attempts, poll_interval=poll_interval)
    report = SmokeReport()
    report.results.extend(structure_tests(app_dir))
    report.results.append(rank_flow_test(app_dir, runner, wait_for_result, callbacks))
    report.results.append(parse_json_flow_test(runner, callbacks))
    return report
