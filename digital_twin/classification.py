"""Map raw provider failures to the pipeline's error taxonomy.

Both functions are pure: the same ProviderFailure always yields the same
Classification, and no exception is raised.
"""

from pydantic import BaseModel, ConfigDict

from digital_twin.exceptions import ErrorCode, ErrorKind, ProviderFailure

_CONNECTION_MARKERS = ("econnrefused", "enotfound", "connection refused", "name or service not known")


class Classification(BaseModel):
    """Outcome of classifying one provider failure."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    code: ErrorCode
    message: str


def _unreachable(failure: ProviderFailure, text: str) -> bool:
    return failure.connection_failed or any(m in text for m in _CONNECTION_MARKERS)


def classify_retrieval_failure(failure: ProviderFailure) -> Classification:
    """Classify a vector search failure.

    Args:
        failure: Raw failure facts from the vector adapter.

    Returns:
        A RetrievalFailure classification with a user-safe message.
    """
    status = failure.status_code
    text = failure.message.lower()

    def result(code: ErrorCode, message: str) -> Classification:
        return Classification(kind=ErrorKind.RETRIEVAL_FAILURE, code=code, message=message)

    if status == 401 or status == 403 or "unauthorized" in text:
        return result(ErrorCode.VECTOR_UNAUTHORIZED, "Invalid vector database credentials")
    if status == 404 or "not found" in text:
        return result(ErrorCode.VECTOR_INDEX_NOT_FOUND, "Vector index not found")
    if status == 429 or "rate limit" in text:
        return result(ErrorCode.VECTOR_RATE_LIMIT, "Vector database rate limit exceeded")
    if failure.timed_out or "timeout" in text or "timed out" in text:
        return result(ErrorCode.VECTOR_TIMEOUT, "Vector search timed out")
    if _unreachable(failure, text):
        return result(ErrorCode.VECTOR_UNREACHABLE, "Cannot connect to the vector database")
    return result(ErrorCode.VECTOR_STORE_ERROR, "Failed to search vector database")


def classify_generation_failure(failure: ProviderFailure) -> Classification:
    """Classify a text generation failure.

    Args:
        failure: Raw failure facts from the LLM adapter.

    Returns:
        A GenerationFailure classification with a user-safe message.
    """
    status = failure.status_code
    text = failure.message.lower()

    def result(code: ErrorCode, message: str) -> Classification:
        return Classification(kind=ErrorKind.GENERATION_FAILURE, code=code, message=message)

    if status == 401 or "invalid api key" in text or "unauthorized" in text:
        return result(ErrorCode.LLM_UNAUTHORIZED, "Invalid generation service API key")
    if status == 429 or "rate limit" in text:
        return result(ErrorCode.LLM_RATE_LIMIT, "Generation service rate limit exceeded")
    if failure.timed_out or "timeout" in text or "timed out" in text:
        return result(ErrorCode.LLM_TIMEOUT, "Generation request timed out")
    if (status == 400 or status == 404) and "model" in text:
        return result(ErrorCode.LLM_MODEL_UNAVAILABLE, "Generation model unavailable")
    if _unreachable(failure, text):
        return result(ErrorCode.LLM_UNREACHABLE, "Cannot connect to the generation service")
    if status is not None and status >= 500:
        return result(ErrorCode.LLM_SERVER_ERROR, "Generation service error")
    if "empty response" in text:
        return result(ErrorCode.LLM_EMPTY_RESPONSE, "Generation service returned an empty response")
    return result(ErrorCode.LLM_SERVICE_ERROR, "Failed to generate response")
