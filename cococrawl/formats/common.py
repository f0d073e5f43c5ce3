import datetime
import re
from pathlib import Path
from typing import Optional, Tuple, Union

import PIL.Image
from lxml import etree

from cococrawl.formats.coco.document import format_timestamp

ImageType = Union[str, Path, PIL.Image.Image]

_svg_length_re = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")


def determine_image_dimensions(image: ImageType) -> Tuple[int, int]:
    """
    Returns (width, height) of the image in pixels.

    Only reads as much of the file as needed to get the size, pixel data isn't decoded.
    SVGs get their size from the width/height (or viewBox) attributes of the root element.
    """
    if isinstance(image, PIL.Image.Image):
        return image.size
    path = Path(image)
    if path.suffix.lower() == ".svg":
        return _svg_dimensions(path)
    with PIL.Image.open(path) as img:
        return img.size


def _parse_svg_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = _svg_length_re.match(value)
    if match is None:
        return None
    return round(float(match.group(1)))


def _svg_dimensions(path: Path) -> Tuple[int, int]:
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    root = etree.parse(str(path), parser).getroot()

    width = _parse_svg_length(root.get("width"))
    height = _parse_svg_length(root.get("height"))

    view_box = root.get("viewBox")
    if (width is None or height is None) and view_box is not None:
        parts = view_box.replace(",", " ").split()
        if len(parts) == 4:
            if width is None:
                width = round(float(parts[2]))
            if height is None:
                height = round(float(parts[3]))

    if width is None or height is None:
        raise ValueError(f"Could not determine the dimensions of SVG image {path}")
    return width, height


def determine_capture_timestamp(path: Path) -> str:
    """Creation time of the file where the platform records it, modification time otherwise"""
    stat = path.stat()
    timestamp = getattr(stat, "st_birthtime", None)
    if timestamp is None:
        timestamp = stat.st_mtime
    return format_timestamp(datetime.datetime.fromtimestamp(timestamp, tz=datetime.timezone.utc))
