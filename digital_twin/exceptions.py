"""Application exception hierarchy.

All custom exceptions inherit from DigitalTwinError.
Each exception has an error code for structured error handling and an
ErrorKind placing it in the query pipeline's failure taxonomy.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    """Closed failure taxonomy reported by the query pipeline."""

    VALIDATION = "Validation"
    CONFIGURATION = "Configuration"
    RETRIEVAL_FAILURE = "RetrievalFailure"
    GENERATION_FAILURE = "GenerationFailure"
    UNKNOWN = "Unknown"


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "RAG-1000"
    CONFIGURATION_ERROR = "RAG-1001"
    VALIDATION_ERROR = "RAG-1002"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "RAG-4000"
    VECTOR_UNAUTHORIZED = "RAG-4001"
    VECTOR_INDEX_NOT_FOUND = "RAG-4002"
    VECTOR_RATE_LIMIT = "RAG-4003"
    VECTOR_TIMEOUT = "RAG-4004"
    VECTOR_UNREACHABLE = "RAG-4005"

    # LLM errors (5xxx)
    LLM_SERVICE_ERROR = "RAG-5000"
    LLM_TIMEOUT = "RAG-5001"
    LLM_RATE_LIMIT = "RAG-5002"
    LLM_UNAUTHORIZED = "RAG-5003"
    LLM_MODEL_UNAVAILABLE = "RAG-5004"
    LLM_UNREACHABLE = "RAG-5005"
    LLM_SERVER_ERROR = "RAG-5006"
    LLM_EMPTY_RESPONSE = "RAG-5007"


class ProviderFailure(BaseModel):
    """Raw facts about a failed call to an external service.

    Attributes:
        status_code: HTTP status reported by the provider, if any.
        message: Provider or transport error text.
        timed_out: The call exceeded its deadline.
        connection_failed: The service could not be reached at all.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int | None = None
    message: str = ""
    timed_out: bool = False
    connection_failed: bool = False


class DigitalTwinError(Exception):
    """Base exception for all digital twin errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "kind": self.kind.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(DigitalTwinError):
    """Configuration or environment error."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(DigitalTwinError):
    """Input validation error."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class RetrievalError(DigitalTwinError):
    """Classified vector search failure."""

    kind = ErrorKind.RETRIEVAL_FAILURE

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class GenerationError(DigitalTwinError):
    """Classified text generation failure."""

    kind = ErrorKind.GENERATION_FAILURE

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class ProviderError(DigitalTwinError):
    """Unclassified failure raised by a service adapter.

    Carries the raw ProviderFailure so callers can classify it.
    """

    def __init__(
        self,
        message: str,
        failure: ProviderFailure,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ) -> None:
        self.failure = failure
        super().__init__(
            message,
            code,
            {"status_code": failure.status_code} if failure.status_code else None,
        )


class VectorStoreError(ProviderError):
    """Vector store adapter error."""

    def __init__(self, message: str, failure: ProviderFailure) -> None:
        super().__init__(message, failure, ErrorCode.VECTOR_STORE_ERROR)


class LLMError(ProviderError):
    """LLM adapter error."""

    def __init__(self, message: str, failure: ProviderFailure) -> None:
        super().__init__(message, failure, ErrorCode.LLM_SERVICE_ERROR)
