import logging
import os
from pathlib import Path
from typing import Collection, List, Optional, Sequence, Union

import PIL.Image
from lxml import etree
from pydantic import BaseModel, Field

from cococrawl.errors import LoadError, PartialFailure
from cococrawl.formats.coco import CocoDocument, CocoImage, CocoInfo, CrawlContext
from cococrawl.formats.common import determine_capture_timestamp, determine_image_dimensions
from cococrawl.util import Observer, create_coco_image_path, gather, is_image, scatter

logger = logging.getLogger(__name__)


class CrawlResult(BaseModel):
    document: CocoDocument
    failures: List[PartialFailure] = Field(default_factory=list)
    """Files that looked like images but whose metadata couldn't be read. They are not in the document"""


class _ImageMetadata(BaseModel):
    file_name: str
    width: int
    height: int
    date_captured: str


def find_images(
    directories: Sequence[Union[str, Path]],
    extensions: Collection[str],
    failures: Optional[List[PartialFailure]] = None,
) -> List[Path]:
    """
    Lists the image files under the directories.

    Directories are walked in the order given, each one depth-first with entries sorted by name,
    so the same tree always produces the same list.
    Unreadable subdirectories get recorded in ``failures``.
    """

    def on_error(e: OSError):
        logger.warning("Can't list %s: %s", e.filename, e.strerror)
        if failures is not None:
            failures.append(PartialFailure(path=str(e.filename), reason=e.strerror or str(e)))

    res: List[Path] = []
    for directory in directories:
        if not os.path.isdir(directory):
            raise LoadError(directory, "Not a directory")
        for dirpath, dirnames, filenames in os.walk(directory, onerror=on_error):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if not is_image(path, extensions):
                    logger.debug("Skipping %s because it's not an image", path)
                    continue
                res.append(path)
    return res


def _read_image_metadata(path: Path, context: CrawlContext, base_dir: Path) -> Union[_ImageMetadata, PartialFailure]:
    try:
        width, height = determine_image_dimensions(path)
        date_captured = determine_capture_timestamp(path)
        file_name = create_coco_image_path(path, base_dir, context.absolute_paths)
    except (OSError, ValueError, etree.XMLSyntaxError, PIL.Image.DecompressionBombError) as e:
        logger.warning("Couldn't read image metadata of %s: %s", path, e)
        return PartialFailure(path=str(path), reason=str(e))
    return _ImageMetadata(file_name=file_name, width=width, height=height, date_captured=date_captured)


def crawl_directories(
    directories: Sequence[Union[str, Path]],
    context: Optional[CrawlContext] = None,
    observer: Optional[Observer] = None,
) -> CrawlResult:
    """
    Builds a new dataset out of all the images found under ``directories``.

    Image metadata is read in parallel; ids are assigned afterwards in the order the files were found,
    starting from 0, so crawling the same tree twice gives the same ids.

    :param directories: Directories to crawl
    :param context: Crawl options
    :param observer: Called every time the metadata of a file has been read
    :return: The dataset (no annotations, categories or licenses) and the files that had to be skipped
    """
    if context is None:
        context = CrawlContext()
    base_dir = context.base_dir if context.base_dir is not None else Path.cwd()

    failures: List[PartialFailure] = []
    paths = find_images(directories, context.extensions, failures)
    logger.info("Found %d image files", len(paths))

    scattered = scatter(
        paths,
        lambda path: _read_image_metadata(path, context, base_dir),
        workers=context.workers,
        observer=observer,
    )

    images: List[CocoImage] = []
    for record in gather(scattered):
        if isinstance(record, PartialFailure):
            failures.append(record)
            continue
        images.append(CocoImage(id=len(images), **record.model_dump()))

    if failures:
        logger.warning("Skipped %d files that couldn't be read", len(failures))

    document = CocoDocument(
        info=CocoInfo.generated(context.version),
        licenses=[],
        images=images,
        annotations=[],
        categories=[],
    )
    return CrawlResult(document=document, failures=failures)
