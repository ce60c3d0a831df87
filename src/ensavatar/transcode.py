"""Transcoder: arbitrary raster bytes to a square WebP of a fixed size.

Uses Pillow. Every frame is centre-cropped to a square and resized, so the
output is always exactly ``size x size`` pixels. Animated sources (GIF,
animated WebP/APNG) keep their animation.
"""

from __future__ import annotations

import asyncio
import io
import struct

from PIL import Image, ImageOps, ImageSequence

from ensavatar.errors import TranscodeError
from ensavatar.types import WEBP_MEDIA_TYPE, TranscodedImage

OUTPUT_FORMAT = "WEBP"
OUTPUT_MEDIA_TYPE = WEBP_MEDIA_TYPE

_QUALITY = 80
_DEFAULT_FRAME_DURATION_MS = 100
_DECODE_ERRORS = (OSError, ValueError, EOFError, SyntaxError, struct.error, Image.DecompressionBombError)


def _normalize_mode(frame: Image.Image) -> Image.Image:
    """Convert a frame to RGB or RGBA, keeping transparency when present."""
    if frame.mode in ("RGBA", "LA", "PA") or "transparency" in frame.info:
        return frame.convert("RGBA")
    return frame.convert("RGB")


def _fit(frame: Image.Image, size: int) -> Image.Image:
    """Centre-crop and resize one frame to a ``size x size`` square."""
    return ImageOps.fit(_normalize_mode(frame), (size, size), method=Image.Resampling.LANCZOS)


def _fit_frames(image: Image.Image, size: int) -> tuple[list[Image.Image], list[int]]:
    """Return resized frames and their display durations in milliseconds."""
    if getattr(image, "n_frames", 1) <= 1:
        return [_fit(ImageOps.exif_transpose(image), size)], [_DEFAULT_FRAME_DURATION_MS]

    frames: list[Image.Image] = []
    durations: list[int] = []
    for frame in ImageSequence.Iterator(image):
        frames.append(_fit(frame, size))
        duration = frame.info.get("duration")
        durations.append(int(duration) if duration else _DEFAULT_FRAME_DURATION_MS)
    return frames, durations


def transcode(data: bytes, size: int) -> TranscodedImage:
    """Encode ``data`` as a ``size x size`` WebP image.

    Raise ``TranscodeError`` for empty input and for anything Pillow cannot
    decode or encode.
    """
    if size <= 0:
        msg = f"size must be > 0; got {size}."
        raise ValueError(msg)
    if not data:
        raise TranscodeError("empty input")

    buffer = io.BytesIO()
    try:
        with Image.open(io.BytesIO(data)) as image:
            loop = int(image.info.get("loop", 0))
            frames, durations = _fit_frames(image, size)
        first, *rest = frames
        if rest:
            first.save(
                buffer,
                format=OUTPUT_FORMAT,
                save_all=True,
                append_images=rest,
                duration=durations,
                loop=loop,
                quality=_QUALITY,
            )
        else:
            first.save(buffer, format=OUTPUT_FORMAT, quality=_QUALITY)
    except _DECODE_ERRORS as exc:
        raise TranscodeError(f"{type(exc).__name__}: {exc}") from exc

    return TranscodedImage(data=buffer.getvalue(), media_type=OUTPUT_MEDIA_TYPE, size=size)


async def transcode_async(data: bytes, size: int) -> TranscodedImage:
    """Run ``transcode`` in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(transcode, data, size)
