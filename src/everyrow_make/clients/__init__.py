"""
Clients layer - Thin HTTP clients for the two external APIs.

Clients only know endpoints and wire formats. Sequencing lives in the
workflow and runner layers.
"""

from .base import ApiError, JsonClient
from .everyrow import (
    ApiResponse,
    EveryRowClient,
    FlowError,
    create_group_payload,
    deep_rank_payload,
)
from .make import MakeClient, module_type_id

__all__ = [
    "ApiError",
    "ApiResponse",
    "EveryRowClient",
    "FlowError",
    "JsonClient",
    "MakeClient",
    "create_group_payload",
    "deep_rank_payload",
    "module_type_id",
]
