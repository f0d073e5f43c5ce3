import logging
import random
from pathlib import Path
from typing import List, Optional, Sequence, Set, Union

from cococrawl.formats.coco import CocoDocument, SplitContext
from cococrawl.identity import ImageIdMapEntry, make_image_id_map, validate_references
from cococrawl.util import rebase_image_path

logger = logging.getLogger(__name__)


def _blacklisted_ids(blacklist: Sequence[CocoDocument]) -> Set[int]:
    res: Set[int] = set()
    for document in blacklist:
        res.update(image.id for image in document.images)
    return res


def split_document(
    document: CocoDocument,
    context: Optional[SplitContext] = None,
    blacklist: Sequence[CocoDocument] = (),
    source: Optional[str] = None,
) -> CocoDocument:
    """
    Picks a subset of the images of the document, together with their annotations.

    Images whose ids appear in any of the ``blacklist`` documents are never picked,
    which makes it possible to carve out disjoint train/val/test splits one after another.

    Ids are kept as they are. Info, categories and licenses are copied over whole.

    :param document: Document to split. It is not modified.
    :param context: Split options
    :param blacklist: Documents with images that shouldn't be selected
    :param source: Name of the document (e.g. its file path), used in messages
    :raises StructuralError: if the document has dangling references
    """
    if context is None:
        context = SplitContext()
    validate_references(document, source)

    excluded = _blacklisted_ids(blacklist)
    candidates: List[ImageIdMapEntry] = [
        entry for entry in make_image_id_map(document).values() if entry.id not in excluded
    ]
    logger.debug("%d candidate images after removing %d blacklisted ids", len(candidates), len(excluded))

    if context.shuffle:
        random.Random(context.seed).shuffle(candidates)
    else:
        candidates.sort(key=lambda entry: entry.id)

    if context.annotated_only:
        candidates = [entry for entry in candidates if len(entry.annotations) > 0]

    selected = candidates[context.offset :]
    if context.count is not None:
        if context.count > len(selected):
            logger.warning("Requested %d images, but only %d are available", context.count, len(selected))
        selected = selected[: context.count]

    logger.info("Selected %d of %d images", len(selected), len(document.images))

    return CocoDocument(
        info=document.info.model_copy(deep=True) if document.info is not None else None,
        licenses=[lic.model_copy(deep=True) for lic in document.licenses] if document.licenses is not None else None,
        images=[entry.image.model_copy(deep=True) for entry in selected],
        annotations=[ann.model_copy(deep=True) for entry in selected for ann in entry.annotations],
        categories=[cat.model_copy(deep=True) for cat in document.categories]
        if document.categories is not None
        else None,
    )


def split_file(
    path: Union[str, Path],
    output_path: Union[str, Path],
    context: Optional[SplitContext] = None,
    blacklist_paths: Sequence[Union[str, Path]] = (),
) -> CocoDocument:
    """Loads the manifest, splits it and saves the split to ``output_path`` with image paths rebased onto it"""
    if context is None:
        context = SplitContext()

    document = CocoDocument.load(path)
    blacklist = [CocoDocument.load(blacklist_path) for blacklist_path in blacklist_paths]

    split = split_document(document, context, blacklist, source=str(path))
    for image in split.images:
        image.file_name = rebase_image_path(image.file_name, path, output_path, context.absolute_paths)

    split.save(output_path)
    return split
