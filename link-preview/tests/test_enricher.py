import io
from unittest.mock import MagicMock, patch

import pytest
import requests
from PIL import Image

from services.enricher import content_subtype, enrich_asset, pretty_size, svg_dimensions


def make_png(width: int = 3, height: int = 2) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height)).save(buffer, format="PNG")
    return buffer.getvalue()


def mock_image_response(payload: bytes, content_type: str | None = "image/png") -> MagicMock:
    response = MagicMock()
    response.content = payload
    response.headers = {"Content-Type": content_type} if content_type else {}
    response.raise_for_status = MagicMock()
    return response


def test_empty_url_skips_download():
    with patch("services.enricher.requests.get") as mock_get:
        asset = enrich_asset("")
    assert asset.model_dump(exclude_none=True) == {"url": ""}
    mock_get.assert_not_called()


def test_enrich_png():
    payload = make_png(3, 2)
    with patch("services.enricher.requests.get", return_value=mock_image_response(payload)):
        asset = enrich_asset("https://example.com/img.png")

    assert asset.url == "https://example.com/img.png"
    assert asset.type == "png"
    assert asset.size == len(payload)
    assert asset.width == 3
    assert asset.height == 2


def test_size_pretty_for_2048_bytes():
    png = make_png()
    payload = png + b"\0" * (2048 - len(png))
    with patch("services.enricher.requests.get", return_value=mock_image_response(payload)):
        asset = enrich_asset("https://example.com/img.png")

    assert asset.size == 2048
    assert asset.size_pretty == "2.0 kB"


def test_missing_content_type_is_unknown():
    response = mock_image_response(make_png(), content_type=None)
    with patch("services.enricher.requests.get", return_value=response):
        asset = enrich_asset("https://example.com/img")
    assert asset.type == "unknown"
    assert asset.width == 3


def test_download_error_degrades_to_url():
    with patch("services.enricher.requests.get", side_effect=requests.ConnectionError("refused")):
        asset = enrich_asset("https://example.com/img.png")
    assert asset.model_dump(exclude_none=True) == {"url": "https://example.com/img.png"}


def test_http_error_degrades_to_url():
    response = mock_image_response(b"")
    response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
    with patch("services.enricher.requests.get", return_value=response):
        asset = enrich_asset("https://example.com/missing.png")
    assert asset.model_dump(exclude_none=True) == {"url": "https://example.com/missing.png"}


def test_undecodable_payload_degrades_to_url():
    response = mock_image_response(b"<html>not an image</html>", content_type="text/html")
    with patch("services.enricher.requests.get", return_value=response):
        asset = enrich_asset("https://example.com/fake.png")
    assert asset.model_dump(exclude_none=True) == {"url": "https://example.com/fake.png"}


def test_enrich_svg_logo():
    payload = b'<svg xmlns="http://www.w3.org/2000/svg" width="32" height="24"><rect/></svg>'
    response = mock_image_response(payload, content_type="image/svg+xml")
    with patch("services.enricher.requests.get", return_value=response):
        asset = enrich_asset("https://example.com/favicon.svg")

    assert asset.type == "svg+xml"
    assert asset.size == len(payload)
    assert (asset.width, asset.height) == (32, 24)


@pytest.mark.parametrize("svg, expected", [
    (b'<svg width="48px" height="16"></svg>', (48, 16)),
    (b'<?xml version="1.0"?><svg viewBox="0 0 100 50"></svg>', (100, 50)),
    (b'<svg width="200" viewBox="0 0 100 50"></svg>', (200, 100)),
    (b'<svg width="100%" height="100%" viewBox="0,0,64,64"></svg>', (64, 64)),
])
def test_svg_dimensions(svg, expected):
    assert svg_dimensions(svg) == expected


def test_svg_without_size_degrades_to_url():
    response = mock_image_response(b"<svg><path d='M0 0'/></svg>", content_type="image/svg+xml")
    with patch("services.enricher.requests.get", return_value=response):
        asset = enrich_asset("https://example.com/icon.svg")
    assert asset.model_dump(exclude_none=True) == {"url": "https://example.com/icon.svg"}


@pytest.mark.parametrize("header, expected", [
    ("image/jpeg", "jpeg"),
    ("image/svg+xml; charset=utf-8", "svg+xml"),
    ("image/", "unknown"),
    ("garbage", "unknown"),
    (None, "unknown"),
])
def test_content_subtype(header, expected):
    assert content_subtype(header) == expected


def test_pretty_size():
    assert pretty_size(0) == "0.0 kB"
    assert pretty_size(2048) == "2.0 kB"
    assert pretty_size(15360) == "15.4 kB"
