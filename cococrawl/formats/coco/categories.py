from typing import Any, ClassVar, Hashable, List, Optional, Tuple, Union

from pydantic import Discriminator, Tag
from typing_extensions import Annotated

from cococrawl.formats.coco.base import CocoModel, Flag, HasId

ContentKey = Tuple[Hashable, ...]


class CocoLicense(HasId, CocoModel):
    id: int
    name: str
    url: Optional[str] = None

    def content_key(self) -> ContentKey:
        """Identity of the license when comparing across files, the id doesn't participate"""
        return self.name, self.url


class ObjectDetectionCategory(HasId, CocoModel):
    """Also used for dense pose"""

    kind: ClassVar[str] = "object_detection"

    id: int
    name: str
    supercategory: Optional[str] = None

    def content_key(self) -> ContentKey:
        return self.kind, self.name, self.supercategory


class KeypointDetectionCategory(HasId, CocoModel):
    kind: ClassVar[str] = "keypoint_detection"

    id: int
    name: str
    supercategory: Optional[str] = None
    keypoints: List[str]
    skeleton: Optional[List[List[int]]] = None

    def content_key(self) -> ContentKey:
        skeleton = tuple(tuple(edge) for edge in self.skeleton) if self.skeleton is not None else None
        return self.kind, self.name, self.supercategory, tuple(self.keypoints), skeleton


class PanopticSegmentationCategory(HasId, CocoModel):
    kind: ClassVar[str] = "panoptic_segmentation"

    id: int
    name: str
    supercategory: Optional[str] = None
    isthing: Optional[Flag] = None
    color: Optional[List[int]] = None

    def content_key(self) -> ContentKey:
        color = tuple(self.color) if self.color is not None else None
        return self.kind, self.name, self.supercategory, self.isthing, color


def category_kind(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return getattr(value, "kind", None)
    if "keypoints" in value:
        return KeypointDetectionCategory.kind
    if "isthing" in value or "color" in value:
        return PanopticSegmentationCategory.kind
    return ObjectDetectionCategory.kind


CocoCategory = Annotated[
    Union[
        Annotated[ObjectDetectionCategory, Tag(ObjectDetectionCategory.kind)],
        Annotated[KeypointDetectionCategory, Tag(KeypointDetectionCategory.kind)],
        Annotated[PanopticSegmentationCategory, Tag(PanopticSegmentationCategory.kind)],
    ],
    Discriminator(category_kind),
]

category_types = (
    ObjectDetectionCategory,
    KeypointDetectionCategory,
    PanopticSegmentationCategory,
)
