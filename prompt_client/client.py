"""Prompt template invocation pipeline: build, send, parse, apply"""

import asyncio
from typing import Any, Iterable, Mapping, Self

from loguru import logger

from prompt_client.configuration import ConfigValue
from prompt_client.errors import InvalidArgumentError
from prompt_client.mapper import apply_output
from prompt_client.models import EndpointConfig, GenerationConfig, GenerationResult, ParsedOutput, TargetRecord, TemplateRequest, TemplateSpecification
from prompt_client.payload import build_request
from prompt_client.records import RecordStore, RecordStores
from prompt_client.response import parse_output
from prompt_client.templates import get_template_specification, resolve_template_specification
from prompt_client.transport import Transport, Transports


def endpoint_from_config() -> EndpointConfig:
    return EndpointConfig(
        base_url=ConfigValue("endpoint.base_url", mandatory=True).resolve(),
        token=ConfigValue("endpoint.token", default="").resolve() or "",
        timeout=ConfigValue("endpoint.timeout", default=30.0).resolve(),
    )


class PromptInvocationClient:
    """Invokes prompt templates and writes their outputs onto records.

    Holds no per-invocation state, so one client may serve concurrent invocations.
    Writes to the same record from concurrent invocations are last-writer-wins.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        endpoint: EndpointConfig | None = None,
        record_store: RecordStore | None = None,
        record_store_key: str | None = None,
    ) -> None:
        self.transport: Transport = transport or Transports.get(ConfigValue("transport", default="http").resolve())()
        self.endpoint: EndpointConfig = endpoint or endpoint_from_config()
        self._record_store: RecordStore | None = record_store
        self._record_store_key: str | None = record_store_key

    @property
    def record_store(self) -> RecordStore | None:
        """Record store, created from its registry key on first use"""
        if self._record_store is None and self._record_store_key:
            self._record_store = RecordStores.get(self._record_store_key)()
        return self._record_store

    @classmethod
    def from_config(cls) -> Self:
        """Create a client with transport, endpoint and record store taken from configuration.

        The record store is only created when a record is first read, so plain
        invocations work even when the store is not fully configured.
        """
        transport_key: str = ConfigValue("transport", default="http").resolve()
        store_key: str | None = ConfigValue("records.store").resolve()
        logger.info(f"Creating prompt client with transport '{transport_key}' and record store '{store_key}'")
        return cls(transport=Transports.get(transport_key)(), endpoint=endpoint_from_config(), record_store_key=store_key)

    async def __aenter__(self) -> Self:
        await self.transport.__aenter__()
        if self._record_store:
            await self._record_store.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()
        if self._record_store:
            await self._record_store.aclose()

    async def invoke(
        self,
        template_id: str,
        inputs: Mapping[str, Any],
        config: GenerationConfig | Mapping[str, Any] | None = None,
        preview: bool = False,
        *,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> GenerationResult:
        request: TemplateRequest = build_request(template_id, inputs, config=config, preview=preview)

        logger.info(f"Invoking template {request.template_id} (preview={preview})")
        result: GenerationResult = await self.transport.send(request, self.endpoint, timeout=timeout, cancel=cancel)
        logger.info(f"Template {request.template_id} returned {len(result.generations)} generation(s)")

        return result

    async def generate(
        self,
        template_id: str,
        inputs: Mapping[str, Any],
        *,
        expected_keys: Iterable[str] | None = None,
        optional_keys: Iterable[str] | None = None,
        config: GenerationConfig | Mapping[str, Any] | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ParsedOutput:
        """Invoke a template and decode its first generation.

        Expected and optional keys default to the configured template specification.
        """
        specification: TemplateSpecification | None = get_template_specification(template_id)
        if expected_keys is None:
            expected_keys = specification.expected_keys if specification else []
        if optional_keys is None:
            optional_keys = specification.optional_keys if specification else []

        result: GenerationResult = await self.invoke(template_id, inputs, config=config, timeout=timeout, cancel=cancel)
        return parse_output(result, expected_keys, optional_keys)

    async def generate_for_record(
        self,
        template_id: str,
        record_id: str,
        *,
        field_map: Mapping[str, str] | None = None,
        input_name: str | None = None,
        config: GenerationConfig | Mapping[str, Any] | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> TargetRecord:
        """Invoke a template against one record and write the parsed output back onto it.

        The record is only loaded and updated once a valid output has been parsed, so
        a failed invocation leaves it untouched.
        """
        if self.record_store is None:
            raise InvalidArgumentError("generate_for_record requires a record store")

        specification: TemplateSpecification = resolve_template_specification(template_id)
        input_name = input_name or specification.record_input_name
        field_map = field_map if field_map is not None else specification.field_map

        if not input_name:
            raise InvalidArgumentError(f"template {template_id} declares no input to receive the record id")
        if not field_map:
            raise InvalidArgumentError(f"template {template_id} has no field map")

        parsed: ParsedOutput = await self.generate(
            template_id,
            {input_name: record_id},
            expected_keys=specification.expected_keys or list(field_map),
            optional_keys=specification.optional_keys,
            config=config,
            timeout=timeout,
            cancel=cancel,
        )

        record: TargetRecord = await self.record_store.get(record_id)
        apply_output(parsed, record, field_map)
        await self.record_store.update(record)

        logger.info(f"Applied {len(parsed)} output field(s) from {template_id} to record {record_id}")

        return record
