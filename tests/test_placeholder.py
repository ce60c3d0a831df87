"""Tests for the placeholder SVG."""

import xml.etree.ElementTree as ET

import pytest

from ensavatar.placeholder import PLACEHOLDER_MEDIA_TYPE, placeholder_svg


@pytest.mark.parametrize("size", [64, 128, 256])
def test_placeholder_is_sized_svg(size: int) -> None:
    root = ET.fromstring(placeholder_svg(size))
    assert root.tag == "{http://www.w3.org/2000/svg}svg"
    assert root.get("width") == f"{size}px"
    assert root.get("height") == f"{size}px"


def test_placeholder_is_deterministic() -> None:
    assert placeholder_svg(128) == placeholder_svg(128)
    assert placeholder_svg(64) != placeholder_svg(128)


def test_placeholder_media_type() -> None:
    assert PLACEHOLDER_MEDIA_TYPE == "image/svg+xml"
