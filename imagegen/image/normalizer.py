"""Resize-then-center-crop image normalization.

Processing flow:
    1. Decode the upstream bytes with Pillow.
    2. Size already equals target -> return as PNG without resampling.
    3. Aspect ratios equal within `ASPECT_TOLERANCE` -> direct resize.
    4. Otherwise uniform resize to the smallest size covering the target box
       (fit size), then crop the centered target rectangle out of it.
    5. Encode the result as PNG.

Determinism:
    Output is a pure function of input bytes and target size for a fixed Pillow
    version. No state is kept between calls.

Error handling strategy:
    - Bytes Pillow cannot identify or load -> `UndecodableImage`.
    - Any decodable image normalizes successfully.
"""

import io
import logging

from PIL import Image, UnidentifiedImageError

from imagegen.errors import UndecodableImage
from imagegen.image.models import NormalizedImage, RawImagePayload
from imagegen.image.provider_config import ASPECT_TOLERANCE

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "PNG"
RESAMPLE = Image.Resampling.LANCZOS

# Modes that resample cleanly and PNG can store as-is.
_PASSTHROUGH_MODES = {"RGB", "RGBA", "L", "LA"}


def compute_fit_size(
    original_width: int,
    original_height: int,
    target_width: int,
    target_height: int,
) -> tuple[int, int]:
    """Return the uniform-scale size covering the target box.

    One axis equals the target, the other is equal or larger.
    """
    original_aspect = original_width / original_height
    target_aspect = target_width / target_height

    if original_aspect > target_aspect:
        fit_height = target_height
        fit_width = round(target_height * original_aspect)
    else:
        fit_width = target_width
        fit_height = round(target_width / original_aspect)

    return fit_width, fit_height


def center_crop_box(
    fit_width: int,
    fit_height: int,
    target_width: int,
    target_height: int,
) -> tuple[int, int, int, int]:
    """Return the `(left, upper, right, lower)` box of the centered target rectangle."""
    left = (fit_width - target_width) // 2
    upper = (fit_height - target_height) // 2
    return left, upper, left + target_width, upper + target_height


def aspects_match(
    original_width: int,
    original_height: int,
    target_width: int,
    target_height: int,
) -> bool:
    return abs(original_width / original_height - target_width / target_height) < ASPECT_TOLERANCE


def _open(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as err:
        raise UndecodableImage(str(err)) from err
    return image


def _prepare_mode(image: Image.Image) -> Image.Image:
    if image.mode in _PASSTHROUGH_MODES:
        return image
    if image.mode in ("P", "PA") or "transparency" in image.info:
        return image.convert("RGBA")
    return image.convert("RGB")


def _encode(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=OUTPUT_FORMAT)
    return buffer.getvalue()


def normalize(
    image: RawImagePayload,
    target_width: int,
    target_height: int,
) -> NormalizedImage:
    """Produce PNG bytes of exactly `target_width x target_height` pixels.

    Args:
        image: Decoded upstream payload.
        target_width: Requested width in pixels.
        target_height: Requested height in pixels.

    Returns:
        `NormalizedImage` with the target dimensions.

    Raises:
        UndecodableImage: `image.data` is not a readable image.
    """
    source = _open(image.data)
    original_width, original_height = source.size

    if (original_width, original_height) == (target_width, target_height):
        logger.debug("Image already %dx%d, skipping resample", target_width, target_height)
        if source.format == OUTPUT_FORMAT:
            data = image.data
        else:
            data = _encode(_prepare_mode(source))
        return NormalizedImage(data=data, width=target_width, height=target_height)

    working = _prepare_mode(source)

    if aspects_match(original_width, original_height, target_width, target_height):
        logger.debug(
            "Direct resize %dx%d -> %dx%d",
            original_width, original_height, target_width, target_height,
        )
        result = working.resize((target_width, target_height), RESAMPLE)
    else:
        fit_width, fit_height = compute_fit_size(
            original_width, original_height, target_width, target_height
        )
        box = center_crop_box(fit_width, fit_height, target_width, target_height)
        logger.debug(
            "Fit resize %dx%d -> %dx%d, crop %s",
            original_width, original_height, fit_width, fit_height, box,
        )
        fitted = working.resize((fit_width, fit_height), RESAMPLE)
        result = fitted.crop(box)

    return NormalizedImage(data=_encode(result), width=target_width, height=target_height)
