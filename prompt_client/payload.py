"""Builds validated template requests"""

from copy import deepcopy
from typing import Any, Iterable, Mapping

from loguru import logger
from pydantic import ValidationError

from prompt_client.configuration import ConfigValue
from prompt_client.errors import InvalidArgumentError
from prompt_client.models import GenerationConfig, TemplateRequest, TemplateSpecification
from prompt_client.templates import get_template_specification
from prompt_client.utility import recursive_update


def default_generation_options(specification: TemplateSpecification | None = None) -> dict[str, Any]:
    """Generation defaults from the `generation` section, overridden by template level defaults"""
    options: dict[str, Any] = deepcopy(ConfigValue("generation", default={}).resolve() or {})
    if specification:
        recursive_update(options, specification.generation)
    return options


def resolve_generation_config(
    config: GenerationConfig | Mapping[str, Any] | None, specification: TemplateSpecification | None = None
) -> GenerationConfig:
    if isinstance(config, GenerationConfig):
        return config
    options: dict[str, Any] = default_generation_options(specification) | dict(config or {})
    try:
        return GenerationConfig.model_validate(options)
    except ValidationError as e:
        raise InvalidArgumentError(f"invalid generation config: {_describe(e)}") from e


def reference_value(name: str, value: Any) -> Any:
    """A bare record id is sent as {"id": ...}; objects are sent as given."""
    if isinstance(value, str):
        if not value.strip():
            raise InvalidArgumentError(f"input '{name}' has an empty record id")
        return {"id": value}
    if isinstance(value, Mapping):
        return dict(value)
    raise InvalidArgumentError(f"input '{name}' must be a record id or an object, found {type(value).__name__}")


def build_request(
    template_id: str,
    inputs: Mapping[str, Any] | None,
    config: GenerationConfig | Mapping[str, Any] | None = None,
    preview: bool = False,
    required_inputs: Iterable[str] | None = None,
) -> TemplateRequest:
    """Build a TemplateRequest.

    Required inputs are taken from `required_inputs`, or else from the configured
    template specification. Missing generation settings fall back to configuration.
    """
    if not isinstance(template_id, str) or not template_id.strip():
        raise InvalidArgumentError("template id must be a non-empty string")

    template_id = template_id.strip()
    inputs = inputs or {}
    if not isinstance(inputs, Mapping):
        raise InvalidArgumentError(f"inputs must map input names to values, found {type(inputs).__name__}")

    specification: TemplateSpecification | None = get_template_specification(template_id)
    required: list[str] = list(required_inputs) if required_inputs is not None else (specification.inputs if specification else [])

    if required and not inputs:
        raise InvalidArgumentError(f"template {template_id} requires inputs {required}, none given")

    missing: list[str] = [name for name in required if name not in inputs]
    if missing:
        raise InvalidArgumentError(f"template {template_id} is missing required input(s): {', '.join(missing)}")

    value_map: dict[str, Any] = {name: reference_value(name, value) for name, value in inputs.items()}
    generation: GenerationConfig = resolve_generation_config(config, specification)

    request = TemplateRequest(template_id=template_id, inputs=value_map, config=generation, preview=preview)

    logger.debug(f"Built request for {template_id}: inputs={list(value_map)} generations={generation.num_generations} preview={preview}")

    return request


def _describe(error: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors())
