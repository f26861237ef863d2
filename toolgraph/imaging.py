"""
Imaging Toolkit
===============
Data-URI helpers and the crop_image tool used by the crop workflow.

Images travel through the graph as data URIs ("data:image/png;base64,...")
so they can sit inside message content parts and plain state fields alike.
Pillow does the decoding and cropping. Only formats model providers accept
end up in a data URI: PNG, JPEG, WebP and GIF pass through, MPO is labelled
JPEG, and anything else is re-encoded as PNG.
"""
import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Mapping, Sequence

from langchain_core.messages import BaseMessage, ToolMessage
from PIL import Image
from pydantic import BaseModel, Field

from .registry import ToolRegistry

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/"


# ── Data URIs ───────────────────────────────────────────────────────────────

# Pillow format → format written into data URIs. MPO is the multi-frame JPEG
# many phone cameras produce; anything else off this list is re-encoded as PNG.
_WEB_FORMATS = {"PNG": "PNG", "JPEG": "JPEG", "MPO": "JPEG", "WEBP": "WEBP", "GIF": "GIF"}


def image_format(data: bytes) -> str:
    """Lower-case Pillow format name of an encoded image ("png", "webp", ...)."""
    with Image.open(BytesIO(data)) as image:
        return image.format.lower()


def web_format(fmt: str | None) -> str:
    """Pillow save format to use for an image whose source format is `fmt`."""
    return _WEB_FORMATS.get((fmt or "").upper(), "PNG")


def _encode(image: Image.Image, fmt: str) -> str:
    if fmt == "PNG" and image.mode not in ("1", "L", "LA", "I", "P", "RGB", "RGBA"):
        image = image.convert("RGB")
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"{DATA_URI_PREFIX}{fmt.lower()};base64,{encoded}"


def to_data_uri(data: bytes) -> str:
    with Image.open(BytesIO(data)) as image:
        fmt = web_format(image.format)
        if image.format not in _WEB_FORMATS:
            return _encode(image, fmt)

    # MPO bytes start with a plain JPEG frame
    encoded = base64.b64encode(data).decode("ascii")
    return f"{DATA_URI_PREFIX}{fmt.lower()};base64,{encoded}"


def decode_data_uri(uri: str) -> bytes:
    if not uri.startswith(DATA_URI_PREFIX) or "," not in uri:
        raise ValueError("Not an image data URI")
    return base64.b64decode(uri.split(",", 1)[1])


def image_to_data_uri(path: str | Path) -> str:
    return to_data_uri(Path(path).read_bytes())


def save_data_uri(uri: str, path: str | Path) -> Path:
    target = Path(path).resolve()
    target.write_bytes(decode_data_uri(uri))
    return target


def crop_data_uri(uri: str, x: int, y: int, width: int, height: int) -> str:
    """
    Crop the image inside a data URI; the area must lie within the image.

    The result keeps the source format when providers accept it (MPO becomes
    JPEG, other formats become PNG).
    """
    data = decode_data_uri(uri)

    with Image.open(BytesIO(data)) as image:
        if x + width > image.width or y + height > image.height:
            raise ValueError(
                f"Crop area ({x}, {y}, {width}x{height}) exceeds the image bounds "
                f"({image.width}x{image.height})"
            )
        return _encode(image.crop((x, y, x + width, y + height)), web_format(image.format))


# ── Log scanning ────────────────────────────────────────────────────────────

def _image_urls(message: BaseMessage):
    if not isinstance(message.content, list):
        return
    for part in message.content:
        if isinstance(part, dict) and part.get("type") == "image_url":
            image_url = part.get("image_url")
            url = image_url.get("url") if isinstance(image_url, dict) else image_url
            if isinstance(url, str) and url:
                yield url


def find_source_image(messages: Sequence[BaseMessage], current: str | None = None) -> str | None:
    """
    Pick the source image out of the conversation.

    The largest image_url part wins; the original upload is normally the
    biggest image in the log.
    """
    source = current
    for message in messages:
        for url in _image_urls(message):
            if source is None or len(url) > len(source):
                source = url
    return source


def find_image_result(messages: Sequence[BaseMessage]) -> str | None:
    """First tool result whose content is an image data URI."""
    for message in messages:
        if (
            isinstance(message, ToolMessage)
            and isinstance(message.content, str)
            and message.content.startswith(DATA_URI_PREFIX)
        ):
            return message.content
    return None


# ── crop_image tool ─────────────────────────────────────────────────────────

class CropArea(BaseModel):
    x: int = Field(ge=0, description="X coordinate of the crop area (left)")
    y: int = Field(ge=0, description="Y coordinate of the crop area (top)")
    width: int = Field(gt=0, description="Width of the crop area in pixels")
    height: int = Field(gt=0, description="Height of the crop area in pixels")


class CropImageArgs(BaseModel):
    crop_area: CropArea = Field(description="Crop area coordinates and dimensions")


def crop_image(crop_area: CropArea, state: Mapping | None = None) -> str:
    source = (state or {}).get("source_image")
    if not source:
        raise ValueError("No source image available to crop")

    logger.info(
        "[crop_image] x=%d y=%d width=%d height=%d",
        crop_area.x, crop_area.y, crop_area.width, crop_area.height,
    )
    return crop_data_uri(source, crop_area.x, crop_area.y, crop_area.width, crop_area.height)


def crop_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        "crop_image",
        CropImageArgs,
        crop_image,
        "Crop the current image using the specified coordinates and dimensions. "
        "The tool will use the image from the conversation context.",
    )
    return registry
