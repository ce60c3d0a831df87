"""Shared image fixtures."""

import io

import pytest
from PIL import Image


def make_png(width: int = 40, height: int = 30, color: str = "orange") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_animated_gif(width: int = 40, height: int = 30, colors: tuple[str, ...] = ("red", "green", "blue")) -> bytes:
    frames = [Image.new("RGB", (width, height), color) for color in colors]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="GIF", save_all=True, append_images=frames[1:], duration=50, loop=0)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def animated_gif_bytes() -> bytes:
    return make_animated_gif()
