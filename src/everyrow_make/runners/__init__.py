"""
Runners layer - Execution engines for workflows.

Runners execute workflows, handling task orchestration and progress reporting.
They interpret tasks and call the appropriate API clients.
"""

from .base import ComponentResult, RunnerCallbacks, RunnerResult, SequentialRunner
from .deploy import DeployRunner, resolve_connection
from .flow import FlowRunner

__all__ = [
    "ComponentResult",
    "DeployRunner",
    "FlowRunner",
    "RunnerCallbacks",
    "RunnerResult",
    "SequentialRunner",
    "resolve_connection",
]
