import asyncio
from typing import Any, Self

import httpx
from loguru import logger

from prompt_client.errors import ConnectivityError, InvocationTimeoutError, MalformedOutputError
from prompt_client.models import EndpointConfig, GenerationResult, TemplateRequest
from prompt_client.utility import truncate

from . import Transports
from .transport import Transport


@Transports.register(key="http")
class HttpTransport(Transport):
    """
    Posts template requests to the generations endpoint using httpx.

    Usage:
        async with HttpTransport() as transport:
            result = await transport.send(request, EndpointConfig(base_url=..., token=...))

    Used without a context manager each call opens and closes its own client.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        user_agent: str = "prompt-client/0.1",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_agent: str = user_agent
        self._transport: httpx.AsyncBaseTransport | None = transport
        self._client: httpx.AsyncClient | None = client
        self._owns_client: bool = client is None

    async def __aenter__(self) -> Self:
        if self._client is None:
            self._client = self._create_client()
        return self

    async def aclose(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers={"User-Agent": self.user_agent}, transport=self._transport)

    @staticmethod
    def headers(endpoint: EndpointConfig) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {endpoint.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def send(
        self,
        request: TemplateRequest,
        endpoint: EndpointConfig,
        *,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> GenerationResult:
        url: str = endpoint.generations_url(request.template_id)
        payload: dict[str, Any] = request.to_payload()
        timeout = timeout or endpoint.timeout

        logger.info(f"POST {url} (preview={request.preview}, generations={request.num_generations})")

        try:
            if self._client is None:
                async with self._create_client() as client:
                    response: httpx.Response = await self.dispatch(self._post(client, url, payload, endpoint, timeout), timeout, cancel)
            else:
                response = await self.dispatch(self._post(self._client, url, payload, endpoint, timeout), timeout, cancel)
        except httpx.TimeoutException as e:
            raise InvocationTimeoutError(f"request to {url} timed out: {e}") from e
        except httpx.TransportError as e:
            raise ConnectivityError(f"could not reach {url}: {e}") from e

        self.ensure_ok(response.status_code, response.text)

        try:
            body: Any = response.json()
        except ValueError as e:
            raise MalformedOutputError("response body is not valid JSON", text=truncate(response.text)) from e

        return self.to_result(body, request)

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict[str, Any], endpoint: EndpointConfig, timeout: float
    ) -> httpx.Response:
        return await client.post(url, json=payload, headers=self.headers(endpoint), timeout=timeout)
