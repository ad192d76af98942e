import base64
import io
import json

from PIL import Image


def make_image_bytes(width, height, color=(200, 40, 40), fmt="PNG", mode="RGB"):
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_bands_bytes(width, height, vertical=True):
    """Three equal red/green/blue bands, vertical (side by side) or horizontal."""
    image = Image.new("RGB", (width, height))
    colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
    for index, color in enumerate(colors):
        if vertical:
            band = (width * index // 3, 0, width * (index + 1) // 3, height)
        else:
            band = (0, height * index // 3, width, height * (index + 1) // 3)
        image.paste(color, band)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def gemini_body(image_bytes, mime_type="image/png"):
    return json.dumps({
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here is your image."},
                        {
                            "inlineData": {
                                "mimeType": mime_type,
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                    ]
                }
            }
        ]
    })


def open_image(data):
    return Image.open(io.BytesIO(data))


def encode_png(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
