import datetime
import logging
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from cococrawl.errors import LoadError, ParseError, WriteError
from cococrawl.formats.coco.annotations import CocoAnnotation
from cococrawl.formats.coco.base import CocoModel, HasId
from cococrawl.formats.coco.categories import CocoCategory, CocoLicense

logger = logging.getLogger(__name__)


class CocoInfo(CocoModel):
    year: Optional[int] = None
    version: Optional[str] = None
    description: Optional[str] = None
    contributor: Optional[str] = None
    url: Optional[str] = None
    date_created: Optional[str] = None

    @staticmethod
    def generated(version: str) -> "CocoInfo":
        """Info section for a freshly produced dataset"""
        now = datetime.datetime.now(tz=datetime.timezone.utc)
        return CocoInfo(
            year=now.year,
            version=version,
            description="",
            contributor="",
            url="",
            date_created=format_timestamp(now),
        )


class CocoImage(HasId, CocoModel):
    id: int
    width: int
    height: int
    file_name: str
    license: Optional[int] = None
    flickr_url: Optional[str] = None
    coco_url: Optional[str] = None
    date_captured: Optional[str] = None


class CocoDocument(CocoModel):
    """
    A whole COCO manifest.

    Optional sections that are missing from the loaded file stay missing when it's saved back.
    """

    info: Optional[CocoInfo] = None
    licenses: Optional[List[CocoLicense]] = None
    images: List[CocoImage]
    annotations: List[CocoAnnotation]
    categories: Optional[List[CocoCategory]] = None

    @staticmethod
    def from_json(json_str: Union[str, bytes], path: Optional[Union[str, Path]] = None) -> "CocoDocument":
        try:
            return CocoDocument.model_validate_json(json_str)
        except ValidationError as e:
            raise ParseError(path, str(e)) from e

    @staticmethod
    def load(path: Union[str, Path]) -> "CocoDocument":
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise LoadError(path, e.strerror or str(e)) from e
        document = CocoDocument.from_json(content, path)
        logger.debug(
            "Loaded %s: %d images, %d annotations", path, len(document.images), len(document.annotations)
        )
        return document

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)

    def save(self, path: Union[str, Path]) -> Path:
        """
        Writes the manifest to ``path``.

        The content goes to a temporary file next to the destination first,
        which then replaces the destination, so a failed write leaves no half-written manifest behind.
        """
        path = Path(path)
        content = self.to_json()
        tmp_path: Optional[Path] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, encoding="utf-8", dir=str(path.parent), suffix=".tmp"
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(content)
            tmp_path.replace(path)
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise WriteError(path, e.strerror or str(e)) from e
        return path


def format_timestamp(timestamp: datetime.datetime) -> str:
    """RFC 3339 in UTC with a ``Z`` suffix"""
    return timestamp.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
