"""Make.com SDK API client - app, connection, module and RPC endpoints."""

import json
import logging
from typing import Any

import httpx

from ..constants import (
    DEFAULT_CONNECTION_TYPE,
    DEFAULT_MODULE_TYPE,
    DEFAULT_TIMEOUT,
    JSON_CONTENT_TYPE,
    JSONC_CONTENT_TYPE,
    MODULE_TYPE_IDS,
    SDK_APPS_PATH,
)
from .base import ApiError, JsonClient, decode_body

logger = logging.getLogger(__name__)


def module_type_id(module_type: str | None) -> int:
    """Map a module definition type to its Make.com type ID (unknown types deploy as actions)."""
    return MODULE_TYPE_IDS.get(module_type or DEFAULT_MODULE_TYPE, MODULE_TYPE_IDS[DEFAULT_MODULE_TYPE])


class MakeClient(JsonClient):
    """Client for the Make.com custom app SDK API (``{base_url}/v2/sdk/apps``)."""

    def __init__(
        self,
        api_key: str,
        app_id: str,
        app_version: str = "1",
        base_url: str = "https://us1.make.com/api",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(f"{base_url.rstrip('/')}{SDK_APPS_PATH}", timeout=timeout, transport=transport)
        self.api_key = api_key
        self.app_id = app_id
        self.app_version = str(app_version)

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self.api_key}"}

    @property
    def app_path(self) -> str:
        return f"/{self.app_id}"

    @property
    def version_path(self) -> str:
        return f"/{self.app_id}/{self.app_version}"

    def request(
        self,
        method: str,
        endpoint: str,
        data: str | dict | list | None = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> Any:
        """
        Send a request and return the decoded body.

        Raises:
            ApiError: On any non-2xx response
        """
        response = self.send(method, endpoint, data, content_type)
        text = response.text

        if not response.is_success:
            raise ApiError(response.status_code, text, method, str(response.request.url))

        return decode_body(text)

    # App-level sections

    def put_base(self, base: dict) -> Any:
        return self.request("PUT", f"{self.version_path}/base", json.dumps(base), JSONC_CONTENT_TYPE)

    def put_common(self, common: dict) -> Any:
        return self.request("PUT", f"{self.version_path}/common", json.dumps(common), JSON_CONTENT_TYPE)

    # Connections

    def list_connections(self) -> dict[str, str]:
        """Map connection label -> Make.com connection name."""
        response = self.request("GET", f"{self.app_path}/connections")
        return {conn["label"]: conn["name"] for conn in _items(response, "appConnections")}

    def create_connection(self, label: str, connection_type: str | None = None) -> str:
        """Create a connection and return its generated name."""
        response = self.request(
            "POST",
            f"{self.app_path}/connections",
            {"label": label, "type": connection_type or DEFAULT_CONNECTION_TYPE},
        )
        return response["appConnection"]["name"]

    # Modules

    def list_modules(self) -> set[str]:
        response = self.request("GET", f"{self.version_path}/modules")
        return {mod["name"] for mod in _items(response, "appModules")}

    def create_module(
        self,
        name: str,
        label: str,
        description: str,
        type_id: int,
        connection: str | None,
    ) -> Any:
        return self.request(
            "POST",
            f"{self.version_path}/modules",
            {
                "name": name,
                "label": label,
                "description": description,
                "typeId": type_id,
                "connection": connection,
            },
        )

    def put_module_section(self, name: str, section: str, payload: Any) -> Any:
        """Upload one module section (api, expect, interface, samples)."""
        return self.request(
            "PUT", f"{self.version_path}/modules/{name}/{section}", json.dumps(payload), JSONC_CONTENT_TYPE
        )

    # RPCs

    def list_rpcs(self) -> set[str]:
        response = self.request("GET", f"{self.version_path}/rpcs")
        return {rpc["name"] for rpc in _items(response, "appRpcs")}

    def create_rpc(self, name: str, label: str, connection: str | None) -> Any:
        return self.request(
            "POST",
            f"{self.version_path}/rpcs",
            {"name": name, "label": label, "connection": connection},
        )

    def put_rpc_section(self, name: str, section: str, payload: Any) -> Any:
        """Upload one RPC section (api, parameters)."""
        return self.request(
            "PUT", f"{self.version_path}/rpcs/{name}/{section}", json.dumps(payload), JSONC_CONTENT_TYPE
        )


def _items(response: Any, key: str) -> list[dict]:
    if isinstance(response, dict):
        return response.get(key) or []
    return []
