import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Union

from cococrawl.errors import MergeError
from cococrawl.formats.coco import (
    ClashPolicy,
    CocoDocument,
    CocoImage,
    CocoInfo,
    CocoLicense,
    KeypointDetectionCategory,
    MergeContext,
    ObjectDetectionCategory,
    PanopticSegmentationAnnotation,
    PanopticSegmentationCategory,
)
from cococrawl.formats.coco.base import HasId
from cococrawl.formats.coco.categories import ContentKey
from cococrawl.identity import validate_references
from cococrawl.util import rebase_image_path

logger = logging.getLogger(__name__)

Deduplicated = Union[CocoLicense, ObjectDetectionCategory, KeypointDetectionCategory, PanopticSegmentationCategory]


class _IdAllocator:
    """Keeps track of the ids taken in the namespace of one entity kind"""

    def __init__(self):
        self.seen: Set[int] = set()
        self.next_unseen = 0

    def is_taken(self, entity_id: int) -> bool:
        return entity_id in self.seen

    def keep(self, entity_id: int) -> int:
        self.seen.add(entity_id)
        if entity_id >= self.next_unseen:
            self.next_unseen = entity_id + 1
        return entity_id

    def fresh(self) -> int:
        """New id above everything seen so far"""
        while self.next_unseen in self.seen:
            self.next_unseen += 1
        return self.keep(self.next_unseen)

    def assign(self, entity: HasId, force_new: bool):
        """Keeps the id of the entity if possible, otherwise gives it a fresh one"""
        if force_new or self.is_taken(entity.get_id()):
            entity.set_id(self.fresh())
        else:
            self.keep(entity.get_id())


class _ContentRegistry:
    """
    Categories or licenses, deduplicated by their content.

    The first entity with a given content survives, later copies map onto its id.
    """

    def __init__(self):
        self.ids = _IdAllocator()
        self.entities: List[Deduplicated] = []
        self._by_content: Dict[ContentKey, Deduplicated] = {}

    def add(self, entity: Deduplicated, force_new_id: bool) -> int:
        """Returns the id the entity ends up with in the merged document"""
        key = entity.content_key()
        existing = self._by_content.get(key)
        if existing is not None:
            return existing.get_id()

        new_entity = entity.model_copy(deep=True)
        self.ids.assign(new_entity, force_new_id)
        self._by_content[key] = new_entity
        self.entities.append(new_entity)
        return new_entity.get_id()


def merge_documents(
    documents: Sequence[CocoDocument],
    context: Optional[MergeContext] = None,
    sources: Optional[Sequence[str]] = None,
) -> CocoDocument:
    """
    Merges the documents into one, in the order given.

    - Categories and licenses with the same content are merged into one, regardless of their ids.
    - With ``ClashPolicy.IGNORE`` an image whose id was already used by an earlier document
      is dropped together with its annotations.
    - With ``ClashPolicy.REASSIGN`` everything coming from the documents after the first one gets new ids.
    - Annotation ids are renumbered when they clash.

    All references (annotation -> image, annotation -> category, image -> license)
    are rewritten together with the ids they point to.

    :param documents: Documents to merge. They are not modified.
    :param context: Merge options
    :param sources: Names of the documents (e.g. file paths), used in messages
    :raises MergeError: if there's nothing to merge
    :raises StructuralError: if any of the documents has dangling references
    """
    if len(documents) == 0:
        raise MergeError("No documents to merge")
    if context is None:
        context = MergeContext()
    if sources is None:
        sources = [f"document #{idx}" for idx in range(len(documents))]

    for document, source in zip(documents, sources):
        validate_references(document, source)

    reassign = context.policy == ClashPolicy.REASSIGN

    categories = _ContentRegistry()
    licenses = _ContentRegistry()
    image_ids = _IdAllocator()
    annotation_ids = _IdAllocator()

    images: List[CocoImage] = []
    annotations = []

    for file_index, (document, source) in enumerate(zip(documents, sources)):
        force_new = reassign and file_index > 0

        category_remap: Dict[int, int] = {}
        for category in document.categories or []:
            category_remap[category.get_id()] = categories.add(category, force_new)

        license_remap: Dict[int, int] = {}
        for coco_license in document.licenses or []:
            license_remap[coco_license.get_id()] = licenses.add(coco_license, force_new)

        image_remap: Dict[int, int] = {}
        for image in document.images:
            if not reassign and image_ids.is_taken(image.id):
                logger.warning(
                    "Image id %s in %s clashes with an existing image id. Ignoring this image.", image.id, source
                )
                continue

            new_image = image.model_copy(deep=True)
            if new_image.license is not None:
                if new_image.license in license_remap:
                    new_image.license = license_remap[new_image.license]
                else:
                    logger.warning(
                        "Image %s in %s references unknown license %s, dropping the reference",
                        image.id,
                        source,
                        image.license,
                    )
                    new_image.license = None
            image_ids.assign(new_image, force_new)
            image_remap.setdefault(image.id, new_image.id)
            images.append(new_image)

        dropped = 0
        for annotation in document.annotations:
            new_image_id = image_remap.get(annotation.get_image_id())
            if new_image_id is None:
                dropped += 1
                continue

            new_annotation = annotation.model_copy(deep=True)
            new_annotation.set_image_id(new_image_id)
            new_annotation.remap_category_ids(category_remap)

            # Panoptic segments share the annotation id namespace
            if isinstance(new_annotation, PanopticSegmentationAnnotation):
                for segment in new_annotation.segments_info:
                    annotation_ids.assign(segment, force_new)
            else:
                annotation_ids.assign(new_annotation, force_new)
            annotations.append(new_annotation)

        if dropped:
            logger.warning("Dropped %d annotations of ignored images in %s", dropped, source)

    logger.info(
        "Merged %d documents: %d images, %d annotations, %d categories, %d licenses",
        len(documents),
        len(images),
        len(annotations),
        len(categories.entities),
        len(licenses.entities),
    )

    return CocoDocument(
        info=CocoInfo.generated(context.version),
        licenses=licenses.entities,
        images=images,
        annotations=annotations,
        categories=categories.entities,
    )


def merge_files(
    paths: Sequence[Union[str, Path]],
    output_path: Union[str, Path],
    context: Optional[MergeContext] = None,
) -> CocoDocument:
    """
    Loads all the manifests, merges them and saves the result to ``output_path``.

    Image paths get rewritten so they stay valid relative to the output manifest.
    Nothing is merged unless every input loads.
    """
    if len(paths) == 0:
        raise MergeError("No files to merge")
    if context is None:
        context = MergeContext()

    documents = [CocoDocument.load(path) for path in paths]
    for path, document in zip(paths, documents):
        for image in document.images:
            image.file_name = rebase_image_path(image.file_name, path, output_path, context.absolute_paths)

    merged = merge_documents(documents, context, sources=[str(path) for path in paths])
    merged.save(output_path)
    return merged
