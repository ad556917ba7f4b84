"""
Module definition checks - catches broken definitions before they are deployed.

Checks:
- JSON parses
- Required fields (label, type, connection) are present
- Communication is a non-empty array
- Definition shape matches the module JSON schema (warnings only)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .bundle import BundleError, list_definition_files, read_definition
from .constants import DEFINITION_SUFFIX, MODULES_DIR, REQUIRED_MODULE_FIELDS


class CheckStatus(Enum):
    """Status of a definition check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class CheckResult:
    """Result of a single definition check."""

    name: str
    status: CheckStatus
    details: str | None = None


@dataclass
class BundleReport:
    """All check results for the modules of an app."""

    checks: list[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.PASS)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.FAIL)

    @property
    def warnings(self) -> int:
        return sum(1 for c in self.checks if c.status == CheckStatus.WARN)

    @property
    def is_valid(self) -> bool:
        return self.failed == 0


_FIELD_LIST = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "type": {"type": "string"},
            "label": {"type": "string"},
            "required": {"type": "boolean"},
        },
    },
}

MODULE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "label": {"type": "string"},
        "description": {"type": "string"},
        "type": {"type": "string"},
        "connection": {"type": ["string", "null"]},
        "communication": {"type": ["array", "object"]},
        "parameters": _FIELD_LIST,
        "interface": _FIELD_LIST,
        "samples": {"type": ["object", "array"]},
    },
}

_validator = Draft202012Validator(MODULE_SCHEMA)


def _json_path(error) -> str:
    path = "$"
    for part in error.absolute_path:
        path += f"[{part}]" if isinstance(part, int) else f".{part}"
    return path


def check_structure(name: str, module: Any) -> CheckResult:
    """Check required fields and the communication array of a parsed module."""
    check_name = f"structure:{name}"

    if not isinstance(module, dict):
        return CheckResult(check_name, CheckStatus.FAIL, "Definition must be a JSON object")

    missing = [f for f in REQUIRED_MODULE_FIELDS if not module.get(f)]
    if missing:
        return CheckResult(check_name, CheckStatus.FAIL, f"Missing required fields: {', '.join(missing)}")

    communication = module.get("communication")
    if not isinstance(communication, list) or len(communication) == 0:
        return CheckResult(check_name, CheckStatus.FAIL, "Missing or empty communication array")

    return CheckResult(check_name, CheckStatus.PASS, "Valid structure")


def check_schema(name: str, module: Any) -> list[CheckResult]:
    """Validate a parsed module against MODULE_SCHEMA; each violation is a warning."""
    errors = sorted(_validator.iter_errors(module), key=lambda e: list(e.absolute_path))
    return [CheckResult(f"schema:{name}", CheckStatus.WARN, f"{_json_path(e)}: {e.message}") for e in errors]


def check_module_file(path: Path) -> list[CheckResult]:
    """Run every check on one module definition file."""
    name = path.name.removesuffix(DEFINITION_SUFFIX)
    try:
        module = read_definition(path)
    except BundleError as e:
        return [CheckResult(f"structure:{name}", CheckStatus.FAIL, str(e))]

    return [check_structure(name, module), *check_schema(name, module)]


def check_bundle(app_dir: Path) -> BundleReport:
    """
    Check every module definition of an app.

    Files are read individually so one broken file does not hide the others.

    Args:
        app_dir: Root directory of the app

    Returns:
        BundleReport with one or more results per module
    """
    report = BundleReport()
    for path in list_definition_files(app_dir / MODULES_DIR):
        report.checks.extend(check_module_file(path))
    return report
