"""
Validation and decoding of generation results.

Only the first generation is used; any further generations are discarded.
Values are not checked against a vocabulary, the prompt text is trusted to
constrain them.
"""

import json
import re
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from prompt_client.errors import EmptyResponseError, MalformedOutputError
from prompt_client.models import GenerationResult, ParsedOutput
from prompt_client.utility import truncate

M = TypeVar("M", bound=BaseModel)

FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def first_text(result: GenerationResult) -> str:
    if not result.generations:
        raise EmptyResponseError("response contains no generations")
    text: str = result.generations[0].text or ""
    if not text.strip():
        raise EmptyResponseError("first generation is empty")
    return text


def strip_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, e.g. ```json ... ```"""
    text = text.strip()
    match = FENCE_PATTERN.match(text)
    return match.group(1) if match else text


def decode_object(text: str) -> dict[str, Any]:
    try:
        data: Any = json.loads(strip_fence(text))
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"generation is not valid JSON: {e.msg}", text=truncate(text)) from e
    if not isinstance(data, dict):
        raise MalformedOutputError(f"expected a JSON object, found {type(data).__name__}", text=truncate(text))
    return data


def as_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_output(result: GenerationResult, expected_keys: Iterable[str], optional_keys: Iterable[str] | None = None) -> ParsedOutput:
    """Decode the first generation as a JSON object holding `expected_keys`.

    Keys in `optional_keys` are kept when present. All other keys are dropped.
    """
    text: str = first_text(result)
    data: dict[str, Any] = decode_object(text)

    required: list[str] = list(dict.fromkeys(expected_keys))
    missing: list[str] = [key for key in required if data.get(key) is None]
    if missing:
        raise MalformedOutputError(f"generation is missing expected key(s): {', '.join(missing)}", text=truncate(text), missing_keys=missing)

    declared: list[str] = required + [key for key in (optional_keys or []) if key not in required and data.get(key) is not None]

    return ParsedOutput(
        values={key: as_string(data[key]) for key in declared},
        required_keys=frozenset(required),
        text=text,
    )


def parse_model(result: GenerationResult, model_cls: type[M]) -> M:
    """Validate the first generation against a pydantic model"""
    text: str = first_text(result)
    try:
        return model_cls.model_validate_json(strip_fence(text))
    except ValidationError as e:
        raise MalformedOutputError(f"generation does not match {model_cls.__name__}: {e.error_count()} error(s)", text=truncate(text)) from e
