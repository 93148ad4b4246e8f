from .client import PromptInvocationClient
from .errors import (
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
from .mapper import apply_output
from .models import EndpointConfig, GenerationConfig, GenerationResult, ParsedOutput, TargetRecord, TemplateRequest
from .payload import build_request
from .response import first_text, parse_model, parse_output
