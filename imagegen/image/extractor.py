"""Locate and decode the base64 image payload in an upstream response body.

Processing flow:
    1. Structured decode: parse JSON and validate against the known response
       schemas, in order:
         A. `candidates[].content.parts[].inlineData.data` (generateContent)
         B. `generatedImages[].bytesBase64Encoded` or
            `predictions[].bytesBase64Encoded` (Imagen)
    2. Raw scan: when the body is not JSON, fails validation, or carries no image
       field, search the text for the first `"data": "` marker and take every
       character up to the next unescaped quote.
    3. Both paths yield an `ExtractionResult`; `extract` turns a miss into
       `MissingPayload`.

Why two paths:
    The upstream schema differs between API variants and has changed over time.
    The raw scan does not require the enclosing document to parse.

Error handling strategy:
    - No marker anywhere -> `MissingPayload`
    - Marker without closing quote -> `MalformedPayload`
    - Invalid base64 in `decode_payload` -> `MalformedPayload`
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from imagegen.errors import MalformedPayload, MissingPayload
from imagegen.image.models import RawImagePayload

logger = logging.getLogger(__name__)

_DATA_MARKER = re.compile(r'"data"\s*:\s*"')


# =========================================================
# RESPONSE SCHEMAS
# =========================================================

class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InlineData(_Schema):
    mime_type: str | None = Field(default=None, alias="mimeType")
    data: str | None = None


class Part(_Schema):
    text: str | None = None
    inline_data: InlineData | None = Field(default=None, alias="inlineData")


class Content(_Schema):
    parts: list[Part] = []


class Candidate(_Schema):
    content: Content | None = None


class GenerateContentResponse(_Schema):
    """Schema A: nested candidate/content/part response."""

    candidates: list[Candidate]


class GeneratedImage(_Schema):
    bytes_base64_encoded: str | None = Field(default=None, alias="bytesBase64Encoded")
    mime_type: str | None = Field(default=None, alias="mimeType")


class GeneratedImagesResponse(_Schema):
    """Schema B: flat image list (`generatedImages` or REST `predictions`)."""

    generated_images: list[GeneratedImage] | None = Field(default=None, alias="generatedImages")
    predictions: list[GeneratedImage] | None = None


# =========================================================
# EXTRACTION
# =========================================================

@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of a payload lookup.

    `found=False` means no marker was seen. `source` names the path that matched
    (`"candidates"`, `"generatedImages"`, `"predictions"` or `"scan"`).
    """

    found: bool
    data: str | None = None
    mime_type: str | None = None
    source: str | None = None


NOT_FOUND = ExtractionResult(found=False)


def _from_candidates(document) -> ExtractionResult:
    response = GenerateContentResponse.model_validate(document)
    for candidate in response.candidates:
        if candidate.content is None:
            continue
        for part in candidate.content.parts:
            if part.inline_data is not None and part.inline_data.data:
                return ExtractionResult(
                    found=True,
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type,
                    source="candidates",
                )
    return NOT_FOUND


def _from_generated_images(document) -> ExtractionResult:
    response = GeneratedImagesResponse.model_validate(document)
    for source, images in (
        ("generatedImages", response.generated_images),
        ("predictions", response.predictions),
    ):
        for image in images or []:
            if image.bytes_base64_encoded:
                return ExtractionResult(
                    found=True,
                    data=image.bytes_base64_encoded,
                    mime_type=image.mime_type,
                    source=source,
                )
    return NOT_FOUND


def decode_structured(body: str) -> ExtractionResult:
    """Try every known schema in order. Never raises."""
    try:
        document = json.loads(body)
    except (TypeError, ValueError):
        return NOT_FOUND

    if not isinstance(document, dict):
        return NOT_FOUND

    for decoder in (_from_candidates, _from_generated_images):
        try:
            result = decoder(document)
        except ValidationError:
            continue
        if result.found:
            return result

    return NOT_FOUND


def scan_raw(body: str) -> ExtractionResult:
    """Find the first `"data": "..."` value in arbitrary text.

    Raises:
        MalformedPayload: Marker found but no closing quote before end of input.
    """
    match = _DATA_MARKER.search(body)
    if not match:
        return NOT_FOUND

    start = match.end()
    index = start
    while index < len(body):
        char = body[index]
        if char == "\\":
            index += 2
            continue
        if char == '"':
            value = body[start:index].replace("\\/", "/")
            return ExtractionResult(found=True, data=value, source="scan")
        index += 1

    raise MalformedPayload()


def find_payload(body: str) -> ExtractionResult:
    """Structured decode first, raw scan as fallback."""
    result = decode_structured(body)
    if result.found:
        logger.debug("Image payload found via %s schema", result.source)
        return result

    result = scan_raw(body)
    if result.found:
        logger.debug("Image payload found via raw scan")
    return result


def extract(body: str) -> str:
    """Return the base64 image string embedded in `body`.

    Raises:
        MissingPayload: No image data marker found.
        MalformedPayload: Marker found but its value is unterminated.
    """
    result = find_payload(body)
    if not result.found:
        raise MissingPayload()
    return result.data


def decode_payload(encoded: str, mime_type: str | None = None) -> RawImagePayload:
    """Base64-decode an extracted payload.

    Raises:
        MalformedPayload: `encoded` is not valid base64.
    """
    compact = "".join(encoded.split())
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedPayload(f"Image data in upstream response is not valid base64: {err}") from err
    return RawImagePayload(data=data, mime_type=mime_type)


def extract_image(body: str) -> RawImagePayload:
    """Extract and decode in one step, keeping any declared mime type."""
    result = find_payload(body)
    if not result.found:
        raise MissingPayload()
    return decode_payload(result.data, result.mime_type)
