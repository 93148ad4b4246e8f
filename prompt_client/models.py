"""Pydantic models for template requests, generation results and parsed outputs"""

from collections import UserDict
from urllib.parse import quote
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# ---------- Request ----------


class GenerationConfig(BaseModel):
    """Generation settings sent as `additionalConfig`"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    num_generations: int = Field(1, ge=1, description="Number of generations to produce")
    temperature: float = Field(0.0, ge=0.0, le=1.0, description="Sampling temperature")
    frequency_penalty: float | None = Field(None, description="Optional frequency penalty")
    presence_penalty: float | None = Field(None, description="Optional presence penalty")
    application_name: str = Field("PromptBuilderPreview", description="Calling application name")

    @field_validator("num_generations", mode="before")
    @classmethod
    def validate_num_generations(cls, v):
        if isinstance(v, bool):
            raise ValueError("num_generations must be an integer, not a boolean")
        return v



class TemplateRequest(BaseModel):
    """A single, validated invocation of a prompt template"""

    model_config = ConfigDict(frozen=True)

    template_id: str = Field(..., min_length=1, description="Template API name")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Input name to reference value")
    config: GenerationConfig = Field(default_factory=GenerationConfig)
    preview: bool = Field(False, description="Resolve the prompt only, no generation")

    @field_validator("template_id", mode="before")
    @classmethod
    def validate_template_id(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v

    @property
    def num_generations(self) -> int:
        return self.config.num_generations

    def to_payload(self) -> dict[str, Any]:
        """Render the JSON body for the generations endpoint"""
        return {
            "isPreview": self.preview,
            "inputParams": {"valueMap": {name: {"value": value} for name, value in self.inputs.items()}},
            "additionalConfig": self.config.model_dump(by_alias=True, exclude_none=True),
        }


class EndpointConfig(BaseModel):
    """Where and how to reach the generations endpoint"""

    base_url: str = Field(..., min_length=1, description="Base URL, e.g. https://host/services/data/v60.0/einstein")
    token: str = Field("", repr=False, description="Bearer token, passed through unmodified")
    timeout: float = Field(30.0, gt=0, description="Per-call timeout in seconds")

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/") if isinstance(v, str) else v

    def generations_url(self, template_id: str) -> str:
        return f"{self.base_url}/prompt-templates/{quote(template_id, safe='')}/generations"


# ---------- Response ----------


class Generation(BaseModel):
    """One generated text"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    text: str = ""
    safety_score: dict[str, Any] | None = None


class GenerationResult(BaseModel):
    """Generations returned for one template request"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    generations: list[Generation] = Field(default_factory=list)
    prompt: str | None = Field(None, description="Resolved prompt text (preview mode)")
    request_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, description="Unmodified response body")

    @classmethod
    def from_response(cls, body: dict[str, Any], preview: bool = False) -> "GenerationResult":
        result = cls.model_validate(body)
        if preview and not result.generations and result.prompt:
            result.generations = [Generation(text=result.prompt)]
        result.raw = body
        return result

    @property
    def texts(self) -> list[str]:
        return [g.text for g in self.generations]

    @property
    def safety_scores(self) -> list[dict[str, Any] | None]:
        return [g.safety_score for g in self.generations]


class ParsedOutput(BaseModel):
    """Declared output keys decoded from the first generation"""

    values: dict[str, str] = Field(default_factory=dict)
    required_keys: frozenset[str] | None = Field(None, description="Keys that must be mapped, defaults to all keys")
    text: str = Field("", description="Text the values were decoded from")

    @model_validator(mode="after")
    def default_required_keys(self) -> "ParsedOutput":
        if self.required_keys is None:
            self.required_keys = frozenset(self.values)
        return self

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)

    def keys(self) -> Iterable[str]:
        return self.values.keys()

    def items(self) -> Iterable[tuple[str, str]]:
        return self.values.items()


# ---------- Records ----------


class TargetRecord(UserDict):
    """A record owned by an external store; remembers which fields were written"""

    def __init__(self, data: dict[str, Any] | None = None, *, record_id: str | None = None, record_type: str | None = None) -> None:
        super().__init__(data or {})
        self.record_id: str | None = record_id or self.data.get("Id")
        self.record_type: str | None = record_type
        self._changed: set[str] = set()

    def __setitem__(self, key: str, value: Any) -> None:
        super().__setitem__(key, value)
        # UserDict.__init__ routes through __setitem__ before _changed exists
        if hasattr(self, "_changed"):
            self._changed.add(key)

    @property
    def changed_fields(self) -> dict[str, Any]:
        return {k: self.data[k] for k in self._changed if k in self.data}

    def mark_clean(self) -> None:
        self._changed.clear()


# ---------- Templates ----------


class TemplateSpecification(BaseModel):
    """Configured description of a prompt template"""

    template_id: str
    inputs: list[str] = Field(default_factory=list, description="Required input names")
    input_name: str | None = Field(None, description="Input receiving the record id in record invocations")
    expected_keys: list[str] = Field(default_factory=list)
    optional_keys: list[str] = Field(default_factory=list)
    field_map: dict[str, str] = Field(default_factory=dict)
    record_type: str | None = None
    prompt: str | None = Field(None, description="Prompt text, used to resolve previews offline")
    mock_text: str | None = Field(None, description="Generation text returned by the mock transport")
    generation: dict[str, Any] = Field(default_factory=dict, description="Template level generation defaults")

    @property
    def record_input_name(self) -> str | None:
        return self.input_name or (self.inputs[0] if self.inputs else None)
