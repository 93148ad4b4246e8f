import asyncio
import json
from collections import deque
from typing import Any, Callable, Iterable

from jinja2 import BaseLoader, Environment, StrictUndefined
from loguru import logger

from prompt_client.models import EndpointConfig, GenerationResult, TemplateRequest
from prompt_client.templates import get_template_specification

from . import Transports
from .transport import Transport

JINJA = Environment(loader=BaseLoader(), autoescape=False, undefined=StrictUndefined)

MockReply = dict[str, Any] | tuple[int, Any] | Exception
Responder = Callable[[TemplateRequest], MockReply]


@Transports.register(key="mock")
class MockTransport(Transport):
    """In-process transport returning canned replies.

    Each reply is a response body (dict), a `(status, body)` tuple or an exception
    to raise. Replies are consumed in order; `responder` is called when none are queued.
    Without either, previews render the configured template prompt and generations
    echo the template's `mock_text` setting. Every request is recorded in `requests`.
    """

    def __init__(self, replies: Iterable[MockReply] | None = None, responder: Responder | None = None, latency: float = 0.0) -> None:
        self.replies: deque[MockReply] = deque(replies or [])
        self.responder: Responder | None = responder
        self.latency: float = latency
        self.requests: list[TemplateRequest] = []

    async def send(
        self,
        request: TemplateRequest,
        endpoint: EndpointConfig,
        *,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> GenerationResult:
        self.requests.append(request)
        reply: MockReply = await self.dispatch(self._reply(request), timeout or endpoint.timeout, cancel)

        if isinstance(reply, Exception):
            raise reply

        status, body = reply if isinstance(reply, tuple) else (200, reply)
        self.ensure_ok(status, body if isinstance(body, str) else json.dumps(body))
        return self.to_result(body, request)

    async def _reply(self, request: TemplateRequest) -> MockReply:
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.replies:
            return self.replies.popleft()
        if self.responder:
            return self.responder(request)
        return self.default_reply(request)

    @staticmethod
    def default_reply(request: TemplateRequest) -> dict[str, Any]:
        specification = get_template_specification(request.template_id)
        if request.preview:
            prompt: str = ""
            if specification and specification.prompt:
                prompt = JINJA.from_string(specification.prompt).render(inputs=request.inputs)
            logger.debug(f"Resolved preview prompt for {request.template_id} ({len(prompt)} characters)")
            return {"prompt": prompt, "generations": []}

        text: str = (specification.mock_text if specification else None) or ""
        return {"generations": [{"text": text} for _ in range(request.num_generations)]}
