class RelayError(Exception):
    """Base error for a relay session. `public_message` is safe to show to the consumer."""

    status_code: int = 500
    public_message: str = "Failed to generate blueprint. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)


class ConfigurationError(RelayError):
    """Required credential or setting is missing."""

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class RequestValidationError(RelayError):
    """Inbound request body is malformed."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class UpstreamError(RelayError):
    """The generation service call failed."""


class UpstreamTimeoutError(UpstreamError):
    """No fragment arrived from the generation service within the idle timeout."""

    status_code = 504
    public_message = "Timed out waiting for the model to respond. Please try again."


class StreamAborted(Exception):
    """A streamed response failed after bytes were sent; the server must abort it."""
