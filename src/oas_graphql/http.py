"""HTTP transport used by resolvers to call the REST API."""

import asyncio
import logging
from typing import Any, Protocol

import requests
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def get_header(headers: dict[str, str], name: str) -> str | None:
    """Look up a header regardless of its case."""
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def trim(text: str | None, length: int = 100) -> str:
    if text is None:
        return ""
    return text if len(text) <= length else text[:length] + "..."


class HttpRequest(BaseModel):
    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    body: str | None = None


class HttpResponse(BaseModel):
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    text: str = ""

    def header(self, name: str) -> str | None:
        return get_header(self.headers, name)


class HttpClient(Protocol):
    async def send(self, request: HttpRequest) -> HttpResponse: ...


class RequestsClient:
    """Send requests with a requests.Session on a worker thread."""

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    async def send(self, request: HttpRequest) -> HttpResponse:
        return await asyncio.to_thread(self._send, request)

    def _send(self, request: HttpRequest) -> HttpResponse:
        logger.debug(
            "Call %s %s query=%s headers=%s body=%s",
            request.method.upper(), request.url, request.query, request.headers, trim(request.body),
        )
        resp = self.session.request(
            request.method.upper(),
            request.url,
            params=request.query,
            headers=request.headers,
            data=request.body.encode("utf-8") if request.body is not None else None,
            timeout=self.timeout,
        )
        logger.debug("Status %s from %s: %s", resp.status_code, request.url, trim(resp.text))
        return HttpResponse(status_code=resp.status_code, headers=dict(resp.headers), text=resp.text)
