"""Image service dispatcher used by the CLI adapter.

Role in pipeline:
    - Validates raw CLI values into a `GenerationRequest` before any network call.
    - Runs `ImageRequestClient` inside its resource scope.
    - Writes the final bytes atomically to the output path.

Output writes:
    Bytes go to a temporary file beside the destination and are moved into place
    with `os.replace` only once complete. A failure at any earlier step leaves the
    destination untouched.

Error handling strategy:
    - Exceptions from models/client are propagated unchanged.
"""

import logging
import os
import tempfile
import threading

from imagegen.image.client import ImageRequestClient
from imagegen.image.models import GenerationRequest, parse_size
from imagegen.image.provider_config import DEFAULT_SIZE, EndpointConfig

logger = logging.getLogger(__name__)


def build_request(prompt: str, size: str | None, api_key: str) -> GenerationRequest:
    """Validate CLI-level values into a request. Raises `InvalidSizeFormat` first."""
    width, height = parse_size(size or DEFAULT_SIZE)
    return GenerationRequest(
        prompt=prompt,
        target_width=width,
        target_height=height,
        credential=api_key,
    )


def generate_image(
    request: GenerationRequest,
    normalize: bool = True,
    endpoint: EndpointConfig | None = None,
    cancel_event: threading.Event | None = None,
) -> bytes:
    """Run one request and return the bytes to be written.

    Args:
        request: Validated generation request.
        normalize: Resize/crop to the request's exact size; when False the
            upstream image is returned as decoded.
        endpoint: Endpoint override; defaults to the configured variant.
        cancel_event: Optional abort signal passed to the client.
    """
    with ImageRequestClient(endpoint=endpoint, cancel_event=cancel_event) as client:
        if normalize:
            image = client.request_image(request)
            logger.info("Normalized image to %dx%d", image.width, image.height)
            return image.data

        payload = client.fetch_payload(request)
        logger.info("Keeping upstream image as returned (%s)", payload.mime_type or "unknown type")
        return payload.data


def ensure_parent_dir(output_path: str) -> str | None:
    """Create the output's parent directory if missing; return it when created."""
    parent = os.path.dirname(os.path.abspath(output_path))
    if os.path.isdir(parent):
        return None
    os.makedirs(parent, exist_ok=True)
    return parent


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def save_image(output_path: str, data: bytes) -> int:
    """Write `data` to `output_path` atomically and return the byte count.

    The file gets the mode a plain `open(..., "wb")` would give it (`0o666` less
    the process umask).
    """
    parent = os.path.dirname(os.path.abspath(output_path))
    fd, temp_path = tempfile.mkstemp(dir=parent, prefix=".imagegen-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(temp_path, _default_file_mode())
        os.replace(temp_path, output_path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    logger.info("Wrote %d bytes to %s", len(data), output_path)
    return len(data)
