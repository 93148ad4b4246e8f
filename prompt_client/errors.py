"""Typed errors raised by the prompt invocation pipeline"""

from prompt_client.utility import truncate


class PromptClientError(Exception):
    """Base class for all prompt client errors"""


class InvalidArgumentError(PromptClientError, ValueError):
    """Raised when a request cannot be built from the given arguments"""


class TemplateNotFoundError(PromptClientError, KeyError):
    """Raised when a template id has no configured specification"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "template not found"


class NetworkBoundaryError(PromptClientError):
    """Base class for failures at the network boundary"""


class TransportError(NetworkBoundaryError):
    """Raised when the remote endpoint answers with a non-success status"""

    MAX_BODY_LENGTH: int = 500

    def __init__(self, status: int, body: str | None = None, message: str | None = None) -> None:
        self.status: int = status
        self.body: str = truncate(body, self.MAX_BODY_LENGTH)
        super().__init__(message or f"endpoint returned HTTP {status}: {self.body}")


class ConnectivityError(NetworkBoundaryError):
    """Raised when the endpoint cannot be reached"""


class InvocationTimeoutError(NetworkBoundaryError, TimeoutError):
    """Raised when a call times out or is cancelled by the caller"""


class EmptyResponseError(PromptClientError):
    """Raised when a response holds no generations"""


class MalformedOutputError(PromptClientError):
    """Raised when generated text cannot be decoded into the expected shape"""

    def __init__(self, message: str, text: str | None = None, missing_keys: list[str] | None = None) -> None:
        self.text: str | None = text
        self.missing_keys: list[str] = missing_keys or []
        super().__init__(message)


class UnmappedKeyError(PromptClientError, KeyError):
    """Raised when a required output key has no target field"""

    def __init__(self, keys: list[str]) -> None:
        self.keys: list[str] = keys
        super().__init__(f"no target field mapped for output key(s): {', '.join(keys)}")

    def __str__(self) -> str:
        return str(self.args[0])


class RecordNotFoundError(PromptClientError, KeyError):
    """Raised when a record store has no record with the given id"""

    def __init__(self, record_id: str) -> None:
        self.record_id: str = record_id
        super().__init__(f"record {record_id} not found")

    def __str__(self) -> str:
        return str(self.args[0])


class ConfigurationError(PromptClientError, ValueError):
    """Raised when a component is missing configuration it cannot run without"""
