"""
Transport abstraction for sending template requests to a generations endpoint
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Self, TypeVar

from loguru import logger
from pydantic import ValidationError

from prompt_client.errors import InvocationTimeoutError, MalformedOutputError, TransportError
from prompt_client.models import EndpointConfig, GenerationResult, TemplateRequest
from prompt_client.utility import Registry, truncate

R = TypeVar("R")


class Transport(ABC):
    """Sends one TemplateRequest and returns its GenerationResult.

    A transport performs exactly one call per `send` and never retries.
    """

    _registry_key: str = "undefined"

    @property
    def key(self) -> str:
        return getattr(self, "_registry_key", "undefined")

    @abstractmethod
    async def send(
        self,
        request: TemplateRequest,
        endpoint: EndpointConfig,
        *,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> GenerationResult:
        """Send the request, raising a NetworkBoundaryError subclass on failure"""

    async def aclose(self) -> None:
        """Release any held resources"""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @staticmethod
    async def dispatch(call: Awaitable[R], timeout: float | None, cancel: asyncio.Event | None = None) -> R:
        """Await `call`, abandoning it when `timeout` elapses or `cancel` is set.

        An abandoned call raises InvocationTimeoutError; the remote side may still complete it.
        """
        task: asyncio.Future[R] = asyncio.ensure_future(call)
        waiters: set[asyncio.Future] = {task}
        cancel_waiter: asyncio.Future | None = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if task in done:
                return task.result()
            reason: str = "cancelled by caller" if cancel_waiter is not None and cancel_waiter in done else f"timed out after {timeout}s"
            raise InvocationTimeoutError(f"generation request {reason}")
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

    @staticmethod
    def ensure_ok(status: int, text: str) -> None:
        if not 200 <= status < 300:
            logger.warning(f"Generations endpoint returned HTTP {status}: {truncate(text, 200)}")
            raise TransportError(status, text)

    @staticmethod
    def to_result(body: Any, request: TemplateRequest) -> GenerationResult:
        if not isinstance(body, dict):
            raise MalformedOutputError(f"expected a JSON object response, found {type(body).__name__}", text=truncate(json.dumps(body)))
        try:
            result: GenerationResult = GenerationResult.from_response(body, preview=request.preview)
        except ValidationError as e:
            raise MalformedOutputError(f"unexpected response shape: {e.error_count()} error(s)", text=truncate(json.dumps(body))) from e

        if not request.preview and len(result.generations) != request.num_generations:
            logger.warning(f"Requested {request.num_generations} generation(s) for {request.template_id}, received {len(result.generations)}")

        return result


class TransportRegistry(Registry):

    items: dict[str, type[Transport]] = {}
