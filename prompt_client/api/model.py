from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenerationOptions(BaseModel):
    """Per-request overrides of the configured generation defaults"""

    num_generations: Optional[int] = Field(None, ge=1, strict=True, description="Number of generations")
    temperature: Optional[float] = Field(None, ge=0.0, le=1.0, description="Sampling temperature")
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    application_name: Optional[str] = None


class InvokeRequest(BaseModel):
    """Invocation of a template with named inputs."""

    inputs: dict[str, Any] = Field(default_factory=dict, description="Input name to record id or object")
    config: Optional[GenerationOptions] = None
    preview: bool = False
    expected_keys: Optional[list[str]] = Field(None, description="Decode the first generation against these keys")
    timeout: Optional[float] = Field(None, gt=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "inputs": {"Input:Case": "500xx000000001"},
                "config": {"num_generations": 1, "temperature": 0},
                "preview": False,
            }
        }
    )

    @field_validator("expected_keys", mode="before")
    @classmethod
    def validate_expected_keys(cls, v):
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v


class GenerationItem(BaseModel):
    text: str
    safety_score: Optional[dict[str, Any]] = None


class InvokeResponse(BaseModel):
    template_id: str
    generations: list[GenerationItem]
    prompt: Optional[str] = None
    request_id: Optional[str] = None
    output: Optional[dict[str, str]] = Field(None, description="Decoded output when expected_keys were given")


class ApplyRequest(BaseModel):
    """Generate for one record and write the output back"""

    field_map: Optional[dict[str, str]] = Field(None, description="Output key to record field, defaults to the template's")
    input_name: Optional[str] = None
    config: Optional[GenerationOptions] = None
    timeout: Optional[float] = Field(None, gt=0)


class ApplyResponse(BaseModel):
    template_id: str
    record_id: str
    fields: dict[str, Any] = Field(description="Record fields written by the template output")
