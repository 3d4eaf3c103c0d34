"""Tool executors.

An executor runs one server-side tool call and returns its result payload, or
raises. The dispatcher turns exceptions into failed ToolResults.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Mapping, Protocol, Union

import httpx

from ..config import Config
from ..errors import ToolExecutionError
from .catalog import DEFAULT_TOOLS, ToolSpec

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"

ToolFunction = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


class ToolExecutor(Protocol):
    async def execute(self, tool: str, params: Dict[str, Any]) -> Any:
        ...


def shape_request_body(tool: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Adapt agent params to the collaborator endpoint's body format."""

    base = tool.split(":", 1)[0]
    if base == "get_call_api":
        return {**params, "method": "GET"}
    if base == "post_call_api":
        return {**params, "method": "POST"}
    if base == "image_generation":
        return {"prompt": params.get("prompt"), "model": params.get("model") or DEFAULT_IMAGE_MODEL}
    return params


class HttpToolExecutor:
    """POSTs the call to ``{base_url}/functions/v1/{endpoint}`` with a bearer token."""

    def __init__(
        self,
        endpoint: str,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.base_url = base_url
        self.api_key = api_key
        self.client = client

    def url(self) -> str:
        base_url = self.base_url or Config.TOOLS_BASE_URL
        if not base_url:
            raise ToolExecutionError(
                "FREEAGENT_TOOLS_URL not configured. Set it to the tool server's base URL "
                "or disable server-side tools."
            )
        return f"{base_url.rstrip('/')}/functions/v1/{self.endpoint}"

    async def execute(self, tool: str, params: Dict[str, Any]) -> Any:
        url = self.url()
        headers = {"Content-Type": "application/json"}
        api_key = self.api_key or Config.TOOLS_API_KEY
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        body = shape_request_body(tool, params)

        try:
            if self.client is None:
                async with httpx.AsyncClient(timeout=Config.TOOL_TIMEOUT_SECONDS) as client:
                    response = await client.post(url, headers=headers, json=body)
            else:
                response = await self.client.post(url, headers=headers, json=body)
        except httpx.RequestError as exc:
            raise ToolExecutionError(f"Could not reach {url}: {exc}", tool=tool) from exc

        if not response.is_success:
            raise ToolExecutionError(
                f"{response.status_code}: {response.text}",
                tool=tool,
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            return response.text


class FunctionToolExecutor:
    """Wraps a Python callable taking the params dict.

    Coroutine functions are awaited; plain functions run in a worker thread so
    they do not stall the other calls of the iteration.
    """

    def __init__(self, func: ToolFunction) -> None:
        self.func = func

    async def execute(self, tool: str, params: Dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(params)
        result = await asyncio.to_thread(self.func, params)
        if inspect.isawaitable(result):
            return await result
        return result


def default_executors(
    tools: Mapping[str, ToolSpec] = DEFAULT_TOOLS,
    *,
    client: httpx.AsyncClient | None = None,
) -> Dict[str, ToolExecutor]:
    """HTTP executors for every server-side tool in the catalog."""

    return {
        name: HttpToolExecutor(spec.endpoint, client=client)
        for name, spec in tools.items()
        if spec.endpoint is not None
    }
