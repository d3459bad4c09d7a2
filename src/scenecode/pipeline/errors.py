"""Human-readable guidance for errors that end a turn."""

from scenecode.core.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    PipelineError,
    ScenecodeError,
    StallTimeoutError,
    TransportError,
)


def describe_error(error: BaseException) -> str:
    """Turn a terminal error into a message suitable for the chat transcript."""
    text = str(error).lower()

    if isinstance(error, ConfigurationError):
        if "api key" in text:
            return (
                "API key required: set SCENECODE_API_KEY or add api_key to your "
                "scenecode configuration, then try again."
            )
        return f"Configuration error: {error}"

    if isinstance(error, StallTimeoutError):
        return (
            "The model stopped responding mid-reply. Please try again, or pick a "
            "faster model."
        )

    if isinstance(error, EmptyResponseError):
        return (
            "The model returned an empty response. Try rephrasing your request "
            "or switching models."
        )

    if isinstance(error, TransportError):
        status = error.status_code
        if status == 401 or "401" in text or "unauthorized" in text:
            return "Authentication failed: please verify your API key."
        if status == 403 or "403" in text or "forbidden" in text:
            return "Access denied: your API key cannot use this model."
        if status == 404 or "404" in text:
            return "Model not found: check the model name in your configuration."
        if status == 429 or "rate limit" in text:
            return "Rate limit reached: wait a moment before sending another message."
        if (status is not None and status >= 500) or "server error" in text:
            return "The provider is having trouble right now. Please try again shortly."
        if "timeout" in text or "network" in text or "connection" in text:
            return "Network problem: check your connection and try again."
        return f"Provider error: {error}"

    if isinstance(error, PipelineError):
        return f"Something went wrong while processing the response: {error}"

    if isinstance(error, ScenecodeError):
        return str(error)

    return f"Unexpected error: {error}"
