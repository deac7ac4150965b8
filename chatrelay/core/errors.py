"""Project error hierarchy."""


class ChatRelayError(Exception):
    """Base error. ``status_code`` is the HTTP status the relay answers with."""

    status_code = 500
    public_message = "Internal Server Error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.public_message)
        self.detail = detail


class MethodNotAllowedError(ChatRelayError):
    """Raised for any method other than OPTIONS, GET or POST."""

    status_code = 405
    public_message = "Method Not Allowed"


class BadRequestError(ChatRelayError):
    """Raised when the request body is not a usable JSON object."""

    status_code = 400
    public_message = "Bad Request"


class PayloadTooLargeError(ChatRelayError):
    status_code = 413
    public_message = "Request Entity Too Large"


class ConfigurationError(ChatRelayError):
    """Raised when the upstream credential is not configured."""

    status_code = 500
    public_message = "Missing OPENAI_API_KEY"


class UpstreamUnavailableError(ChatRelayError):
    """Raised when the upstream call fails before any response arrives."""

    status_code = 500
    public_message = "upstream_unreachable"
