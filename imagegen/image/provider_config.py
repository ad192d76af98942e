"""Provider/runtime configuration for the image generation layer.

Architectural role:
    Centralizes endpoint selection, fixed pipeline constants and credential lookup
    for `imagegen.image.client` and the CLI adapter.

Request flow integration:
    - `client.ImageRequestClient` consumes `ENDPOINTS` / `get_endpoint` and
      `REQUEST_TIMEOUT_SECONDS`.
    - `normalizer` consumes `ASPECT_TOLERANCE`.
    - `models.parse_size` consumes `MAX_DIMENSION`.
    - `api.cli` consumes `DEFAULT_SIZE` and `resolve_api_key`.

Determinism:
    Deterministic for a fixed process environment. Environment-driven values are
    resolved at import time, except `resolve_api_key`, which reads the environment
    on each call.

Fixed constants:
    `MAX_DIMENSION` and `ASPECT_TOLERANCE` are product decisions carried over as-is.
    They are not tunable: output equivalence depends on the exact values.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from imagegen.errors import ConfigurationError, MissingCredential

load_dotenv()


MAX_DIMENSION = 4096
ASPECT_TOLERANCE = 0.001
REQUEST_TIMEOUT_SECONDS = 60
DEFAULT_SIZE = "1024x1024"

API_KEY_ENV_VAR = "GEMINI_API_KEY"


@dataclass(frozen=True)
class EndpointConfig:
    """Upstream endpoint variant.

    Attributes:
        url_template: URL with a `{model}` placeholder.
        model: Model name substituted into the template.
        auth: `"header"` sends `x-goog-api-key`, `"query"` appends `?key=`.
        payload_style: `"generate_content"` or `"predict"` request body shape.
        resolution_hint: Append `(generate at WxH resolution)` to the prompt.
    """

    url_template: str
    model: str
    auth: str = "header"
    payload_style: str = "generate_content"
    resolution_hint: bool = True

    @property
    def url(self) -> str:
        return self.url_template.format(model=self.model)


GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:generateContent"
)

IMAGEN_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:predict"
)

IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL")
IMAGE_ENDPOINT = os.getenv("GEMINI_IMAGE_ENDPOINT", "gemini").strip().lower()

# Endpoint variant map. The model env override applies to whichever is active.
ENDPOINTS = {

    "gemini": EndpointConfig(
        url_template=GEMINI_URL_TEMPLATE,
        model=IMAGE_MODEL or "gemini-2.5-flash-image",
        auth="header",
    ),

    "gemini_query": EndpointConfig(
        url_template=GEMINI_URL_TEMPLATE,
        model=IMAGE_MODEL or "gemini-2.5-flash-image",
        auth="query",
    ),

    "imagen": EndpointConfig(
        url_template=IMAGEN_URL_TEMPLATE,
        model=IMAGE_MODEL or "imagen-4.0-generate-001",
        auth="header",
        payload_style="predict",
    ),

}


def get_endpoint(name: str | None = None) -> EndpointConfig:
    """Return the endpoint variant `name`, defaulting to `GEMINI_IMAGE_ENDPOINT`.

    Raises:
        ConfigurationError: Unknown variant name.
    """
    key = (name or IMAGE_ENDPOINT).strip().lower()
    endpoint = ENDPOINTS.get(key)
    if endpoint is None:
        raise ConfigurationError(
            f"Unknown image endpoint: {key} (expected one of: {', '.join(sorted(ENDPOINTS))})"
        )
    return endpoint


def resolve_api_key(explicit: str | None) -> tuple[str, str]:
    """Resolve the API key and report where it came from.

    Resolution order:
        1. `explicit` (the `--api-key` value) when non-blank -> source `"command line"`.
        2. `GEMINI_API_KEY` from the environment (or `.env`) -> source
           `"GEMINI_API_KEY"`.

    Returns:
        `(key, source)` tuple.

    Raises:
        MissingCredential: Neither source yields a non-blank value.
    """
    if explicit and explicit.strip():
        return explicit.strip(), "command line"

    env_value = os.getenv(API_KEY_ENV_VAR)
    if env_value and env_value.strip():
        return env_value.strip(), API_KEY_ENV_VAR

    raise MissingCredential(API_KEY_ENV_VAR)
