"""Custom exceptions for recipe_harvest.

The hierarchy mirrors the stages of the harvesting pipeline:

- ``FetchError``: a page could not be downloaded. Extractors convert it into
  a ``None`` result, so it rarely escapes the fetch layer.
- ``UnknownSourceError``: a URL or source tag does not belong to any
  supported website.
- ``SchemaViolationError``: a structured-output provider returned a document
  that does not satisfy the expected schema.
- ``ProviderError``: the provider call itself failed (network, auth, rate
  limit). Triggers fallback to the next provider where one is configured.
- ``ConfigurationError``: invalid settings.

Example:
    >>> try:
    ...     raise FetchError("Unexpected status", url="https://smaker.pl", status=503)
    ... except HarvestError as e:
    ...     print(e)
    Unexpected status (url='https://smaker.pl', status=503)
"""


class HarvestError(Exception):
    """Base exception for all recipe_harvest errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about where/when the error occurred
    """

    def __init__(self, message: str, **context: str | int | float | bool | None) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error description
            **context: Additional context (e.g., url="...", recipe_id=12)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class FetchError(HarvestError):
    """A page could not be retrieved.

    Raised when:
    - The server answers with a non-2xx status
    - The connection fails or times out

    Example:
        >>> raise FetchError("Request failed", url="https://aniagotuje.pl/przepis/x", status=404)
    """

    pass


class UnknownSourceError(HarvestError):
    """A URL or source tag matches no supported website."""

    pass


class SchemaViolationError(HarvestError):
    """A structured-output response does not match the expected shape.

    Raised when:
    - The response body is not valid JSON
    - The top-level key (``ingredients`` or ``steps``) is missing
    - The document fails model validation

    Example:
        >>> raise SchemaViolationError("Missing key", key="ingredients", recipe_id=7)
    """

    pass


class ProviderError(HarvestError):
    """Transport-level failure of a structured-output provider.

    Wraps errors raised by the OpenAI SDK (connection errors, timeouts,
    authentication failures, rate limits, 5xx responses).
    """

    pass


class ConfigurationError(HarvestError):
    """Error in configuration or settings.

    Raised when:
    - Configuration file is invalid
    - Settings have invalid values
    - Environment variables are malformed

    Example:
        >>> raise ConfigurationError(
        ...     "Unknown ingredient provider",
        ...     ingredient_provider="claude",
        ...     valid_providers="openai, grok",
        ... )
    """

    pass
