"""Error kinds raised by the image generation pipeline.

Architectural role:
    Every failure the core can surface is one of these classes. The CLI adapter
    catches `ImageGenError`, prints its message to stderr and exits non-zero.

Error handling strategy:
    - All errors are terminal for a single invocation; nothing is retried.
    - Errors carry the context needed for diagnostics (offending size string,
      upstream status code and body).
"""


class ImageGenError(Exception):
    """Base class for all pipeline failures."""


class InvalidSizeFormat(ImageGenError):
    """Size string is not `WIDTHxHEIGHT` with bounded positive integers."""

    def __init__(self, size_text, reason: str | None = None):
        self.size_text = size_text
        self.reason = reason
        message = f"Invalid size {size_text!r}: expected WIDTHxHEIGHT, e.g. 1024x1024"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ConfigurationError(ImageGenError):
    """Environment configuration names something that does not exist."""


class MissingCredential(ImageGenError):
    """No API key given on the command line or in the environment."""

    def __init__(self, env_var: str = "GEMINI_API_KEY"):
        self.env_var = env_var
        super().__init__(
            f"API key must be provided via --api-key or the {env_var} environment variable"
        )


class UpstreamRequestFailed(ImageGenError):
    """Upstream answered with a non-success status, or the transport failed.

    `status` is `None` when no HTTP response was received at all.
    """

    def __init__(self, status: int | None, body: str):
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"Image request failed: {body}")
        else:
            super().__init__(f"Image request failed with status {status}: {body}")


class UpstreamTimeout(ImageGenError):
    """Upstream did not answer within the request timeout."""

    def __init__(self, timeout: float | None = None, message: str | None = None):
        self.timeout = timeout
        if message is None:
            message = f"Image request timed out after {timeout:g} seconds" if timeout else "Image request timed out"
        super().__init__(message)


class RequestCancelled(UpstreamTimeout):
    """The in-flight request was aborted through the caller's cancel signal."""

    def __init__(self):
        super().__init__(message="Image request cancelled")


class MissingPayload(ImageGenError):
    """Response body carries no image data marker."""

    def __init__(self, message: str = "No image data found in upstream response"):
        super().__init__(message)


class MalformedPayload(ImageGenError):
    """Image data marker found but its value is unterminated or not valid base64."""

    def __init__(self, message: str = "Image data in upstream response is unterminated"):
        super().__init__(message)


class UndecodableImage(ImageGenError):
    """Decoded bytes are not an image Pillow can read."""

    def __init__(self, detail: str | None = None):
        self.detail = detail
        message = "Upstream payload could not be decoded as an image"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
