"""Value types flowing through the image pipeline.

Lifecycle:
    All values are created, transformed and consumed within one request. None of
    them is persisted; writing the final bytes is the service layer's job.
"""

import re
from dataclasses import dataclass

from imagegen.errors import InvalidSizeFormat, MissingCredential
from imagegen.image.provider_config import MAX_DIMENSION

_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


def _check_dimension(value, size_text) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSizeFormat(size_text, "dimensions must be integers")
    if value <= 0:
        raise InvalidSizeFormat(size_text, "dimensions must be positive")
    if value > MAX_DIMENSION:
        raise InvalidSizeFormat(size_text, f"dimensions must not exceed {MAX_DIMENSION}")
    return value


def parse_size(size_text: str) -> tuple[int, int]:
    """Parse `WIDTHxHEIGHT` into a `(width, height)` tuple.

    Raises:
        InvalidSizeFormat: Not two decimal integers joined by `x`, or a dimension
            is zero or larger than `MAX_DIMENSION`.
    """
    match = _SIZE_PATTERN.match(size_text or "")
    if not match:
        raise InvalidSizeFormat(size_text)

    width = _check_dimension(int(match.group(1)), size_text)
    height = _check_dimension(int(match.group(2)), size_text)
    return width, height


@dataclass(frozen=True)
class GenerationRequest:
    """One prompt-to-image request.

    Attributes:
        prompt: Text prompt, non-empty after stripping.
        target_width: Output width in pixels, `1..MAX_DIMENSION`.
        target_height: Output height in pixels, `1..MAX_DIMENSION`.
        credential: API key, opaque and non-empty.
    """

    prompt: str
    target_width: int
    target_height: int
    credential: str

    def __post_init__(self):
        if not self.prompt or not self.prompt.strip():
            raise ValueError("Prompt cannot be empty")
        size_text = f"{self.target_width}x{self.target_height}"
        _check_dimension(self.target_width, size_text)
        _check_dimension(self.target_height, size_text)
        if not self.credential or not self.credential.strip():
            raise MissingCredential()

    @property
    def size(self) -> tuple[int, int]:
        return self.target_width, self.target_height

    def __repr__(self):
        # Keep the key out of logs and tracebacks.
        return (
            f"GenerationRequest(prompt={self.prompt!r}, "
            f"target_width={self.target_width}, target_height={self.target_height}, "
            f"credential='***')"
        )


@dataclass(frozen=True)
class RawImagePayload:
    """Decoded image bytes as returned by the upstream, before normalization."""

    data: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class NormalizedImage:
    """PNG bytes that decode to exactly `width x height` pixels."""

    data: bytes
    width: int
    height: int
    format: str = "PNG"
