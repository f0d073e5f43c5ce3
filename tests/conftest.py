import json
from pathlib import Path
from typing import Callable, Tuple

import PIL.Image
import pytest

from cococrawl.formats.coco import CocoDocument

RES_DIR = Path(__file__).parent / "res"


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Writes a real image file of the given size, format is picked from the extension"""

    def _make(path: Path, size: Tuple[int, int] = (40, 30)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        PIL.Image.new("RGB", size, color=(200, 30, 30)).save(path)
        return path

    return _make


@pytest.fixture
def write_manifest() -> Callable[[Path, dict], Path]:
    def _write(path: Path, content: dict) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(content))
        return path

    return _write


@pytest.fixture
def mixed_manifest_path() -> Path:
    """Manifest with every annotation and category variant"""
    return RES_DIR / "mixed.json"


@pytest.fixture
def mixed_document(mixed_manifest_path) -> CocoDocument:
    return CocoDocument.load(mixed_manifest_path)


@pytest.fixture
def detection_document() -> CocoDocument:
    """Small object detection dataset: 4 images, 3 of them annotated"""
    return CocoDocument.model_validate(
        {
            "info": {"year": 2024, "version": "1.0.0", "description": "", "contributor": "", "url": ""},
            "licenses": [{"id": 1, "name": "CC-BY", "url": "https://creativecommons.org/licenses/by/4.0/"}],
            "images": [
                {"id": 10, "width": 100, "height": 80, "file_name": "images/a.jpg", "license": 1},
                {"id": 11, "width": 100, "height": 80, "file_name": "images/b.jpg"},
                {"id": 12, "width": 64, "height": 64, "file_name": "images/c.jpg"},
                {"id": 13, "width": 64, "height": 64, "file_name": "images/d.jpg"},
            ],
            "annotations": [
                {"id": 100, "image_id": 10, "category_id": 1, "bbox": [10, 20, 30, 40], "area": 1200, "iscrowd": 0},
                {"id": 101, "image_id": 10, "category_id": 2, "bbox": [5, 10, 10, 20], "area": 200, "iscrowd": 0},
                {"id": 102, "image_id": 11, "category_id": 1, "bbox": [0, 0, 50, 50], "area": 2500, "iscrowd": 0},
                {"id": 103, "image_id": 13, "category_id": 2, "bbox": [1.5, 2.5, 3, 4], "area": 12.0, "iscrowd": 0},
            ],
            "categories": [
                {"id": 1, "name": "cat", "supercategory": "animal"},
                {"id": 2, "name": "dog", "supercategory": "animal"},
            ],
        }
    )
