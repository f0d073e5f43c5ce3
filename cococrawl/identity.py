import logging
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from cococrawl.errors import DuplicateIdError, StructuralError
from cococrawl.formats.coco import CocoAnnotation, CocoDocument, CocoImage
from cococrawl.formats.coco.base import HasId

logger = logging.getLogger(__name__)


def build_id_map(entities: Iterable[HasId], strict: bool = False, kind: str = "entity") -> Dict[int, int]:
    """
    Maps the id of every entity to its position in ``entities``.

    :param entities: Entities of a single kind
    :param strict: Raise on duplicate ids. Otherwise the first occurrence of an id wins
        and the later ones are silently left out of the map.
    :param kind: Name of the entity kind, used in the error message
    """
    res: Dict[int, int] = {}
    for idx, entity in enumerate(entities):
        entity_id = entity.get_id()
        if entity_id in res:
            if strict:
                raise DuplicateIdError(kind, entity_id)
            continue
        res[entity_id] = idx
    return res


def _describe(annotation: CocoAnnotation) -> str:
    if isinstance(annotation, HasId):
        return f"{annotation.kind} annotation {annotation.get_id()}"
    return f"{annotation.kind} annotation for image {annotation.get_image_id()}"


def validate_references(document: CocoDocument, source: Optional[str] = None):
    """
    Makes sure that every annotation points at an existing image and existing categories.

    Dangling license references of images only get logged, the format doesn't enforce them.

    :raises StructuralError: on the first annotation that doesn't resolve
    """
    where = f" in {source}" if source is not None else ""
    image_ids = build_id_map(document.images, kind="image")
    category_ids = build_id_map(document.categories or [], kind="category")

    for annotation in document.annotations:
        if annotation.get_image_id() not in image_ids:
            raise StructuralError(
                f"{_describe(annotation)}{where} references missing image {annotation.get_image_id()}"
            )
        for category_id in annotation.referenced_category_ids():
            if category_id not in category_ids:
                raise StructuralError(f"{_describe(annotation)}{where} references missing category {category_id}")

    if document.licenses is None:
        return
    license_ids = build_id_map(document.licenses, kind="license")
    for image in document.images:
        if image.license is not None and image.license not in license_ids:
            logger.warning("Image %s%s references unknown license %s", image.id, where, image.license)


class ImageIdMapEntry(BaseModel):
    id: int
    image: CocoImage
    annotations: List[CocoAnnotation] = Field(default_factory=list)


def make_image_id_map(document: CocoDocument) -> Dict[int, ImageIdMapEntry]:
    """
    Groups annotations under their images.

    The map is ordered the same way as the images of the document, annotations keep their order.
    Annotations pointing to images that don't exist are left out.
    """
    res: Dict[int, ImageIdMapEntry] = {}
    for image in document.images:
        if image.id not in res:
            res[image.id] = ImageIdMapEntry(id=image.id, image=image)
    for annotation in document.annotations:
        entry = res.get(annotation.get_image_id())
        if entry is not None:
            entry.annotations.append(annotation)
    return res
