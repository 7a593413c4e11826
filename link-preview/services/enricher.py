import io
import logging
import re

import requests
from bs4 import BeautifulSoup
from PIL import Image

from config import ASSET_TIMEOUT, USER_AGENT
from models.preview import EnrichedAsset

logger = logging.getLogger(__name__)

_SVG_LENGTH = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$")


def enrich_asset(url: str) -> EnrichedAsset:
    """
    Download the image at `url` and describe it: content subtype, byte size
    and pixel dimensions. Any failure degrades to an asset carrying only its
    URL, so a broken image never fails the preview it belongs to.
    """
    if not url:
        return EnrichedAsset(url="")

    try:
        response = requests.get(
            url,
            timeout=ASSET_TIMEOUT,
            headers={"User-Agent": USER_AGENT},
            allow_redirects=True,
        )
        response.raise_for_status()
        payload = response.content
        subtype = content_subtype(response.headers.get("Content-Type"))
        if subtype == "svg+xml":
            width, height = svg_dimensions(payload)
        else:
            width, height = image_dimensions(payload)
    except Exception as exc:
        logger.warning(f"Could not enrich image {url}: {exc}")
        return EnrichedAsset(url=url)

    return EnrichedAsset(
        url=url,
        type=subtype,
        size=len(payload),
        size_pretty=pretty_size(len(payload)),
        width=width,
        height=height,
    )


def image_dimensions(payload: bytes) -> tuple[int, int]:
    # Image.open only parses the header; pixel data is never decoded here.
    with Image.open(io.BytesIO(payload)) as img:
        return img.size


def svg_dimensions(payload: bytes) -> tuple[int, int]:
    """
    Size of an SVG document from the root's width/height, falling back to
    its viewBox (scaled by whichever of width/height is given).
    """
    svg = BeautifulSoup(payload, "html.parser").find("svg")
    if svg is None:
        raise ValueError("no <svg> root element")

    width = _svg_length(svg.get("width"))
    height = _svg_length(svg.get("height"))
    if width is None or height is None:
        # html.parser lowercases attribute names
        view_box = (svg.get("viewbox") or "").replace(",", " ").split()
        if len(view_box) != 4:
            raise ValueError("SVG declares neither width/height nor viewBox")
        box_width, box_height = float(view_box[2]), float(view_box[3])
        if width is None and height is None:
            width, height = box_width, box_height
        elif width is None:
            width = height * box_width / box_height
        else:
            height = width * box_height / box_width
    return round(width), round(height)


def _svg_length(value: str | None) -> float | None:
    match = _SVG_LENGTH.match(value) if value else None
    return float(match.group(1)) if match else None


def content_subtype(content_type: str | None) -> str:
    if not content_type or "/" not in content_type:
        return "unknown"
    subtype = content_type.split("/", 1)[1].split(";", 1)[0].strip()
    return subtype or "unknown"


def pretty_size(size: int) -> str:
    return f"{size / 1000:.1f} kB"
