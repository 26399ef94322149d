"""
Client-side downscaling of the user's photographs before they are attached to a model request.
"""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from PIL import Image, ImageOps, UnidentifiedImageError

PathLike = str | Path
ImageSource = PathLike | bytes | BinaryIO

logger = logging.getLogger(__name__)

MIN_EDGE = 512
MAX_EDGE = 1536
DEFAULT_MAX_EDGE = 1024
MIN_QUALITY = 70
MAX_QUALITY = 85
DEFAULT_QUALITY = 80


class ImagePreparationError(ValueError):
    """Raised when a user-supplied photo cannot be decoded."""


@dataclass(frozen=True)
class PreparedImage:
    """A downscaled JPEG ready to be base64-encoded into a multimodal request."""

    data: bytes
    width: int
    height: int
    original_size: tuple[int, int]
    mime_type: str = "image/jpeg"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    def open(self) -> BytesIO:
        """Return a fresh binary handle over the JPEG bytes."""
        return BytesIO(self.data)


def prepare_image(
    source: ImageSource | PreparedImage,
    *,
    max_edge: int | None = None,
    quality: int | None = None,
) -> PreparedImage:
    """
    Normalise a photo: apply EXIF orientation, flatten alpha, cap the longest edge, re-encode as JPEG.
    """
    if isinstance(source, PreparedImage):
        return source

    resolved_edge = _clamp(
        max_edge if max_edge is not None else _env_int("JUGAAD_MAX_IMAGE_EDGE", DEFAULT_MAX_EDGE),
        MIN_EDGE,
        MAX_EDGE,
    )
    resolved_quality = _clamp(
        quality if quality is not None else _env_int("JUGAAD_JPEG_QUALITY", DEFAULT_QUALITY),
        MIN_QUALITY,
        MAX_QUALITY,
    )

    raw = _read_source(source)
    try:
        with Image.open(BytesIO(raw)) as img:
            img = ImageOps.exif_transpose(img)
            img = _flatten_to_rgb(img)
            original_size = img.size

            longest_side = max(original_size)
            if longest_side > resolved_edge:
                scale = resolved_edge / float(longest_side)
                resized = (
                    max(1, int(round(original_size[0] * scale))),
                    max(1, int(round(original_size[1] * scale))),
                )
                img = img.resize(resized, Image.Resampling.LANCZOS)

            out = BytesIO()
            img.save(out, format="JPEG", quality=resolved_quality)
            width, height = img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ImagePreparationError("Could not read the supplied photo as an image.") from exc

    logger.debug(
        "Prepared image %sx%s -> %sx%s (%s bytes)",
        original_size[0],
        original_size[1],
        width,
        height,
        out.tell(),
    )
    return PreparedImage(
        data=out.getvalue(),
        width=width,
        height=height,
        original_size=original_size,
    )


def _read_source(source: ImageSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        if hasattr(source, "read"):
            return source.read()  # type: ignore[union-attr]
        return Path(source).expanduser().read_bytes()
    except OSError as exc:
        raise ImagePreparationError(f"Could not read the supplied photo: {exc}") from exc


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in {"RGBA", "LA"} or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA")
        rgb = Image.new("RGB", img.size, (255, 255, 255))
        rgb.paste(img, mask=img.getchannel("A"))
        return rgb
    return img.convert("RGB")


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(int(value), upper))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default
