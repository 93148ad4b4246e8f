"""
FastAPI router exposing template invocation over HTTP.
"""

from typing import Any, AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from prompt_client.api.model import ApplyRequest, ApplyResponse, GenerationItem, InvokeRequest, InvokeResponse
from prompt_client.client import PromptInvocationClient
from prompt_client.configuration import Config, get_config_provider, setup_config_store
from prompt_client.errors import (
    ConfigurationError,
    ConnectivityError,
    EmptyResponseError,
    InvalidArgumentError,
    InvocationTimeoutError,
    MalformedOutputError,
    PromptClientError,
    RecordNotFoundError,
    TemplateNotFoundError,
    TransportError,
    UnmappedKeyError,
)
from prompt_client.models import GenerationResult, TargetRecord
from prompt_client.response import parse_output
from prompt_client.templates import resolve_template_specification

# pylint: disable=unused-argument

ERROR_STATUS: list[tuple[type[PromptClientError], int]] = [
    (InvalidArgumentError, 400),
    (TemplateNotFoundError, 404),
    (RecordNotFoundError, 404),
    (UnmappedKeyError, 422),
    (InvocationTimeoutError, 504),
    (ConnectivityError, 503),
    (TransportError, 502),
    (EmptyResponseError, 502),
    (MalformedOutputError, 502),
    (ConfigurationError, 500),
]


def as_http_error(error: PromptClientError) -> HTTPException:
    for error_cls, status in ERROR_STATUS:
        if isinstance(error, error_cls):
            return HTTPException(status_code=status, detail={"error": type(error).__name__, "message": str(error)})
    return HTTPException(status_code=500, detail={"error": type(error).__name__, "message": str(error)})


async def get_config_dependency() -> Config:
    if not get_config_provider().is_configured():
        logger.info("Config Store is not configured, setting up...")
        setup_config_store()
    return get_config_provider().get_config()


async def get_client(config: Config = Depends(get_config_dependency)) -> AsyncGenerator[PromptInvocationClient, None]:
    async with PromptInvocationClient.from_config() as client:
        yield client


router = APIRouter()


@router.get("/is_alive")
async def is_alive(config: Config = Depends(get_config_dependency)) -> dict[str, str]:
    """Health check endpoint"""
    return {"status": "alive"}


@router.post("/prompt-templates/{template_id}/generations", response_model=InvokeResponse, response_model_exclude_none=True)
async def invoke(template_id: str, body: InvokeRequest, client: PromptInvocationClient = Depends(get_client)) -> InvokeResponse:
    """
    Invoke a prompt template.

    Inputs map template input names to a record id (sent as {"id": ...}) or an
    inline object. When `expected_keys` is given the first generation is decoded
    as a JSON object holding those keys and returned as `output`.
    """
    options: dict[str, Any] = body.config.model_dump(exclude_none=True) if body.config else {}
    try:
        result: GenerationResult = await client.invoke(template_id, body.inputs, config=options, preview=body.preview, timeout=body.timeout)
        output: dict[str, str] | None = parse_output(result, body.expected_keys).values if body.expected_keys else None
    except PromptClientError as e:
        logger.error(f"Invocation of {template_id} failed: {e}")
        raise as_http_error(e) from e

    return InvokeResponse(
        template_id=template_id,
        generations=[GenerationItem(text=g.text, safety_score=g.safety_score) for g in result.generations],
        prompt=result.prompt,
        request_id=result.request_id,
        output=output,
    )


@router.post("/prompt-templates/{template_id}/records/{record_id}", response_model=ApplyResponse)
async def apply(template_id: str, record_id: str, body: ApplyRequest | None = None, client: PromptInvocationClient = Depends(get_client)) -> ApplyResponse:
    """Invoke a template for one record and write the decoded output onto the record."""
    body = body or ApplyRequest()
    options: dict[str, Any] = body.config.model_dump(exclude_none=True) if body.config else {}
    try:
        field_map: dict[str, str] = body.field_map or resolve_template_specification(template_id).field_map
        record: TargetRecord = await client.generate_for_record(
            template_id, record_id, field_map=field_map, input_name=body.input_name, config=options, timeout=body.timeout
        )
    except PromptClientError as e:
        logger.error(f"Applying {template_id} to {record_id} failed: {e}")
        raise as_http_error(e) from e

    return ApplyResponse(
        template_id=template_id,
        record_id=record_id,
        fields={name: record[name] for name in field_map.values() if name in record},
    )
