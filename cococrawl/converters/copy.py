import logging
import shutil
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from cococrawl.errors import PartialFailure, WriteError
from cococrawl.formats.coco import CocoDocument, CocoImage, CopyContext
from cococrawl.util import Observer, gather, rebase_image_path, resolve_image_path, scatter

logger = logging.getLogger(__name__)

IMAGES_DIR = "images"


class CopyResult(BaseModel):
    document: CocoDocument
    """The document with the image paths pointing at the copies"""
    failures: List[PartialFailure] = Field(default_factory=list)


def _copy_image(image: CocoImage, source_path: Path, images_dir: Path) -> Union[Path, PartialFailure]:
    source = resolve_image_path(image.file_name, source_path)
    if not source.is_file():
        logger.warning("Image %s (id %s) doesn't exist, not copying it", source, image.id)
        return PartialFailure(path=str(source), reason="File not found", image_id=image.id)

    destination = images_dir / source.name
    logger.debug("Copying %s to %s", source, destination)
    try:
        shutil.copy(source, destination)
    except OSError as e:
        logger.warning("Couldn't copy %s to %s: %s", source, destination, e)
        return PartialFailure(path=str(source), reason=str(e), image_id=image.id)
    return destination


def copy_dataset(
    document: CocoDocument,
    source_path: Union[str, Path],
    output_dir: Union[str, Path],
    context: Optional[CopyContext] = None,
    observer: Optional[Observer] = None,
) -> CopyResult:
    """
    Copies all the images of the dataset into ``<output_dir>/images/``.

    Images are copied under their base name, so two images with the same name overwrite each other.
    Images that can't be copied keep pointing at their source, with the path rebased
    so it stays valid from a manifest saved in ``output_dir``.

    :param document: Document to copy. It is not modified.
    :param source_path: Path of the manifest the document was loaded from.
        Relative image paths are resolved against its directory.
    :param output_dir: Directory of the consolidated dataset
    :param context: Copy options
    :param observer: Called every time an image is done
    """
    if context is None:
        context = CopyContext()
    source_path = Path(source_path)
    output_dir = Path(output_dir)
    images_dir = output_dir / IMAGES_DIR
    try:
        images_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(images_dir, str(e)) from e

    new_document = document.model_copy(deep=True)
    scattered = scatter(
        new_document.images,
        lambda image: _copy_image(image, source_path, images_dir),
        workers=context.workers,
        observer=observer,
    )

    failures: List[PartialFailure] = []
    for image, result in zip(new_document.images, gather(scattered)):
        if isinstance(result, PartialFailure):
            failures.append(result)
            image.file_name = rebase_image_path(
                image.file_name, source_path, output_dir / source_path.name, context.absolute_paths
            )
            continue
        if context.absolute_paths:
            image.file_name = str(result.resolve())
        else:
            image.file_name = f"{IMAGES_DIR}/{result.name}"

    logger.info("Copied %d images into %s", len(new_document.images) - len(failures), images_dir)
    if failures:
        logger.warning("%d images couldn't be copied", len(failures))

    return CopyResult(document=new_document, failures=failures)


def copy_file(
    path: Union[str, Path],
    output_dir: Union[str, Path],
    context: Optional[CopyContext] = None,
    observer: Optional[Observer] = None,
) -> CopyResult:
    """
    Consolidates the dataset of the manifest at ``path`` into ``output_dir``:
    the images go into ``<output_dir>/images/`` and the manifest gets saved as ``<output_dir>/<manifest name>``.
    """
    path = Path(path)
    document = CocoDocument.load(path)
    result = copy_dataset(document, path, output_dir, context, observer)
    result.document.save(Path(output_dir) / path.name)
    return result
