"""Shared HTTP plumbing for the API clients."""

import json
import logging
from typing import Any

import httpx

from ..constants import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Non-2xx response from an external API."""

    def __init__(self, status_code: int, body: str, method: str = "", url: str = ""):
        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url


def decode_body(text: str) -> Any:
    """Decode a JSON response body, falling back to the raw text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


class JsonClient:
    """
    Base class wrapping an httpx.Client bound to one API root.

    Subclasses provide the authorization header.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def auth_headers(self) -> dict[str, str]:
        return {}

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    def send(
        self,
        method: str,
        endpoint: str,
        data: str | dict | list | None = None,
        content_type: str = "application/json",
    ) -> httpx.Response:
        """Send a request; string bodies go out verbatim, others are JSON-encoded."""
        headers = {**self.auth_headers(), "Content-Type": content_type}

        if data is None:
            content = None
        elif isinstance(data, str):
            content = data
        else:
            content = json.dumps(data)

        logger.info(f"{method} {endpoint}")
        return self.client.request(method, self.url(endpoint), headers=headers, content=content)

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
