import pytest
from PIL import Image

from imagegen.errors import UndecodableImage
from imagegen.image.models import RawImagePayload
from imagegen.image.normalizer import (
    aspects_match,
    center_crop_box,
    compute_fit_size,
    normalize,
)
from tests.helpers import encode_png, make_bands_bytes, make_image_bytes, open_image


def _close(actual, expected, tolerance=12):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


class TestGeometry:

    def test_wider_source_fits_height(self):
        assert compute_fit_size(1600, 900, 1024, 1024) == (1820, 1024)

    def test_taller_source_fits_width(self):
        assert compute_fit_size(900, 1600, 1024, 1024) == (1024, 1820)

    def test_center_crop_box(self):
        assert center_crop_box(1820, 1024, 1024, 1024) == (398, 0, 1422, 1024)

    def test_odd_excess_floors(self):
        assert center_crop_box(101, 50, 50, 50) == (25, 0, 75, 50)

    @pytest.mark.parametrize(
        "original, target",
        [
            ((1200, 900), (1024, 1024)),
            ((900, 1200), (640, 480)),
            ((1024, 1024), (800, 600)),
            ((1000, 3), (7, 5)),
            ((3, 1000), (4096, 1)),
            ((1920, 1080), (1080, 1920)),
            ((333, 777), (512, 511)),
        ],
    )
    def test_crop_stays_inside_fit(self, original, target):
        fit_w, fit_h = compute_fit_size(*original, *target)
        left, upper, right, lower = center_crop_box(fit_w, fit_h, *target)
        assert fit_w >= target[0] and fit_h >= target[1]
        assert left >= 0 and upper >= 0
        assert right <= fit_w and lower <= fit_h
        assert (right - left, lower - upper) == target

    def test_aspect_tolerance_boundary(self):
        assert aspects_match(1000, 1001, 500, 500)
        assert not aspects_match(1000, 1002, 500, 500)
        assert aspects_match(1200, 900, 800, 600)


class TestNormalize:

    def test_same_size_png_returned_unchanged(self):
        data = make_image_bytes(64, 48)
        result = normalize(RawImagePayload(data), 64, 48)
        assert result.data == data
        assert (result.width, result.height, result.format) == (64, 48, "PNG")

    def test_same_size_jpeg_reencoded_without_resampling(self):
        data = make_image_bytes(64, 48, fmt="JPEG")
        result = normalize(RawImagePayload(data, "image/jpeg"), 64, 48)
        output = open_image(result.data)
        assert output.format == "PNG"
        assert output.size == (64, 48)
        assert output.convert("RGB").tobytes() == open_image(data).convert("RGB").tobytes()

    def test_idempotent(self):
        first = normalize(RawImagePayload(make_bands_bytes(300, 200)), 120, 120)
        second = normalize(RawImagePayload(first.data), 120, 120)
        assert second.data == first.data

    def test_matching_aspect_is_uniform_scale(self):
        image = Image.new("RGB", (200, 100), (255, 0, 0))
        image.paste((0, 0, 255), (100, 0, 200, 100))

        result = normalize(RawImagePayload(encode_png(image)), 100, 50)
        output = open_image(result.data).convert("RGB")
        assert output.size == (100, 50)
        assert _close(output.getpixel((10, 25)), (255, 0, 0))
        assert _close(output.getpixel((90, 25)), (0, 0, 255))

    def test_wide_source_keeps_center_band(self):
        result = normalize(RawImagePayload(make_bands_bytes(300, 100)), 100, 100)
        output = open_image(result.data).convert("RGB")
        assert output.size == (100, 100)
        assert output.getcolors() == [(100 * 100, (0, 255, 0))]

    def test_wide_source_scaled_then_cropped(self):
        result = normalize(RawImagePayload(make_bands_bytes(600, 200)), 100, 100)
        output = open_image(result.data).convert("RGB")
        assert output.size == (100, 100)
        assert _close(output.getpixel((50, 50)), (0, 255, 0))

    def test_tall_source_keeps_middle_band(self):
        result = normalize(RawImagePayload(make_bands_bytes(100, 300, vertical=False)), 50, 50)
        output = open_image(result.data).convert("RGB")
        assert output.size == (50, 50)
        assert _close(output.getpixel((25, 25)), (0, 255, 0))

    @pytest.mark.parametrize(
        "source, target",
        [((1200, 900), (800, 600)), ((640, 480), (1024, 1024)), ((50, 200), (300, 100)), ((7, 3), (1, 1))],
    )
    def test_output_has_exact_target_size(self, source, target):
        result = normalize(RawImagePayload(make_image_bytes(*source)), *target)
        assert open_image(result.data).size == target
        assert (result.width, result.height) == target

    def test_palette_image_converted(self):
        data = make_image_bytes(40, 20, color=3, mode="P")
        result = normalize(RawImagePayload(data), 20, 20)
        output = open_image(result.data)
        assert output.size == (20, 20)
        assert output.mode == "RGBA"

    def test_transparency_preserved(self):
        data = make_image_bytes(40, 40, color=(10, 20, 30, 0), mode="RGBA")
        result = normalize(RawImagePayload(data), 20, 10)
        output = open_image(result.data)
        assert output.mode == "RGBA"
        assert output.getpixel((10, 5))[3] == 0

    @pytest.mark.parametrize("data", [b"", b"not an image", b"\x89PNG\r\n\x1a\n truncated"])
    def test_undecodable_bytes(self, data):
        with pytest.raises(UndecodableImage):
            normalize(RawImagePayload(data), 10, 10)
