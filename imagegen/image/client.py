"""HTTP client for the upstream image-generation endpoint.

Processing flow:
    1. Build the prompt (optionally annotated with a resolution hint).
    2. Build the JSON body for the configured endpoint variant.
    3. POST once with the API key as header or query parameter, 60 s timeout.
    4. Non-2xx -> `UpstreamRequestFailed` with status and body verbatim.
    5. Extract and base64-decode the payload.
    6. Normalize to the requested size (`request_image` only).

Resource model:
    The client owns a `requests.Session` for its lifetime. Use it as a context
    manager so the session is closed on every exit path.

Retry behavior:
    None. Each call is attempted once.

Cancellation:
    An optional `threading.Event`. Set before the call, the call is not issued.
    Set during the call, the caller stops waiting on the worker thread running the
    POST, closes the session and raises at once. Both cases raise
    `RequestCancelled`.

Security considerations:
    The API key is never logged. Exceptions may include upstream response bodies.
"""

import logging
import threading

import requests

from imagegen.errors import RequestCancelled, UpstreamRequestFailed, UpstreamTimeout
from imagegen.image import extractor, normalizer
from imagegen.image.models import GenerationRequest, NormalizedImage, RawImagePayload
from imagegen.image.provider_config import (
    REQUEST_TIMEOUT_SECONDS,
    EndpointConfig,
    get_endpoint,
)

logger = logging.getLogger(__name__)

CANCEL_POLL_SECONDS = 0.05


class ImageRequestClient:
    """Single-shot prompt-to-image client.

    Args:
        endpoint: Endpoint variant; defaults to the configured one.
        session: Optional pre-built session (for tests or connection reuse).
        timeout: Request timeout in seconds.
        cancel_event: Optional signal that aborts the in-flight call.
    """

    def __init__(
        self,
        endpoint: EndpointConfig | None = None,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.endpoint = endpoint or get_endpoint()
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.cancel_event = cancel_event
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.session.close()

    # =========================================================
    # REQUEST ASSEMBLY
    # =========================================================

    def build_prompt(self, request: GenerationRequest) -> str:
        prompt = request.prompt.strip()
        if not self.endpoint.resolution_hint:
            return prompt
        return f"{prompt} (generate at {request.target_width}x{request.target_height} resolution)"

    def build_payload(self, request: GenerationRequest) -> dict:
        """Return the JSON body for the endpoint's payload style."""
        prompt = self.build_prompt(request)

        if self.endpoint.payload_style == "predict":
            return {
                "instances": [{"prompt": prompt}],
                "parameters": {
                    "sampleCount": 1,
                    "outputOptions": {"mimeType": "image/png"},
                },
            }

        return {
            "contents": [
                {"parts": [{"text": prompt}]}
            ],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
            },
        }

    def build_auth(self, request: GenerationRequest) -> tuple[dict, dict]:
        """Return `(headers, params)` carrying the credential."""
        headers = {"Content-Type": "application/json"}
        params = {}
        if self.endpoint.auth == "query":
            params["key"] = request.credential
        else:
            headers["x-goog-api-key"] = request.credential
        return headers, params

    # =========================================================
    # TRANSPORT
    # =========================================================

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _send(self, url: str, headers: dict, params: dict, payload: dict) -> requests.Response:
        try:
            return self.session.post(
                url,
                headers=headers,
                params=params or None,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as err:
            if self._cancelled():
                raise RequestCancelled() from err
            raise UpstreamTimeout(self.timeout) from err
        except requests.exceptions.RequestException as err:
            if self._cancelled():
                raise RequestCancelled() from err
            raise UpstreamRequestFailed(None, str(err)) from err

    def _send_cancellable(self, url: str, headers: dict, params: dict, payload: dict) -> requests.Response:
        """Run the POST on a daemon worker and stop waiting once cancel is signalled.

        The abandoned worker ends when the server answers or the timeout elapses.
        """
        outcome = {}
        finished = threading.Event()

        def worker():
            try:
                outcome["response"] = self._send(url, headers, params, payload)
            except BaseException as err:
                outcome["error"] = err
            finally:
                finished.set()

        threading.Thread(target=worker, name="imagegen-request", daemon=True).start()

        while not finished.wait(CANCEL_POLL_SECONDS):
            if self.cancel_event.is_set():
                logger.info("Cancelling in-flight image request")
                self.close()
                raise RequestCancelled()

        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    def _post(self, request: GenerationRequest) -> requests.Response:
        if self._cancelled():
            raise RequestCancelled()

        headers, params = self.build_auth(request)
        payload = self.build_payload(request)
        url = self.endpoint.url

        logger.info("POST %s (model=%s)", url, self.endpoint.model)
        if self.cancel_event is None:
            return self._send(url, headers, params, payload)
        return self._send_cancellable(url, headers, params, payload)

    def fetch_payload(self, request: GenerationRequest) -> RawImagePayload:
        """Issue the request and return the decoded upstream image, unnormalized.

        Raises:
            UpstreamRequestFailed, UpstreamTimeout, RequestCancelled,
            MissingPayload, MalformedPayload.
        """
        response = self._post(request)
        if self._cancelled():
            raise RequestCancelled()

        logger.debug("Upstream responded with status %s", response.status_code)
        if not 200 <= response.status_code < 300:
            raise UpstreamRequestFailed(response.status_code, response.text)

        return extractor.extract_image(response.text)

    def request_image(self, request: GenerationRequest) -> NormalizedImage:
        """Issue the request and return the image normalized to the target size.

        Raises:
            Everything `fetch_payload` raises, plus `UndecodableImage`.
        """
        payload = self.fetch_payload(request)
        return normalizer.normalize(payload, request.target_width, request.target_height)
