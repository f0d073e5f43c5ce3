from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import Discriminator, Tag
from typing_extensions import Annotated

from cococrawl.formats.coco.base import CocoModel, Flag, HasCategoryId, HasId, HasImageId, Number


class CocoRLE(CocoModel):
    """Run-length encoded mask. ``counts`` is either a list or the compressed string form"""

    counts: Union[List[int], str]
    size: List[int]


# Either RLE or a list of polygons, each polygon being [x1, y1, x2, y2, ..., xn, yn]
CocoSegmentation = Union[CocoRLE, List[List[Number]]]


class ObjectDetectionAnnotation(HasId, HasCategoryId, CocoModel):
    kind: ClassVar[str] = "object_detection"

    id: int
    image_id: int
    category_id: int
    segmentation: Optional[CocoSegmentation] = None
    area: Optional[Number] = None
    bbox: Optional[List[Number]] = None
    """[x, y, width, height]"""
    iscrowd: Optional[Flag] = None


class KeypointDetectionAnnotation(HasId, HasCategoryId, CocoModel):
    kind: ClassVar[str] = "keypoint_detection"

    id: int
    image_id: int
    category_id: int
    keypoints: List[Number]
    """[x1, y1, v1, x2, y2, v2, ..., xn, yn, vn]"""
    num_keypoints: Optional[int] = None
    segmentation: Optional[CocoSegmentation] = None
    area: Optional[Number] = None
    bbox: Optional[List[Number]] = None
    iscrowd: Optional[Flag] = None


class PanopticSegmentInfo(HasId, CocoModel):
    id: int
    category_id: int
    area: Optional[Number] = None
    bbox: Optional[List[Number]] = None
    iscrowd: Optional[Flag] = None


class PanopticSegmentationAnnotation(HasImageId, CocoModel):
    """
    Panoptic annotations don't have an id of their own,
    the segments inside them do (and they share the annotation id namespace).
    """

    kind: ClassVar[str] = "panoptic_segmentation"

    image_id: int
    file_name: str
    segments_info: List[PanopticSegmentInfo] = []

    def referenced_category_ids(self) -> List[int]:
        return [segment.category_id for segment in self.segments_info]

    def remap_category_ids(self, mapping: Dict[int, int]):
        for segment in self.segments_info:
            segment.category_id = mapping[segment.category_id]


class ImageCaptioningAnnotation(HasId, HasImageId, CocoModel):
    kind: ClassVar[str] = "image_captioning"

    id: int
    image_id: int
    caption: str


class DensePoseAnnotation(HasId, HasCategoryId, CocoModel):
    """Uses the object detection categories"""

    kind: ClassVar[str] = "dense_pose"

    id: int
    image_id: int
    category_id: int
    iscrowd: Optional[Flag] = None
    area: Optional[Number] = None
    bbox: Optional[List[Number]] = None
    dp_I: Optional[List[Number]] = None
    dp_U: Optional[List[Number]] = None
    dp_V: Optional[List[Number]] = None
    dp_x: Optional[List[Number]] = None
    dp_y: Optional[List[Number]] = None
    dp_masks: Optional[List[Optional[CocoRLE]]] = None


_dense_pose_keys = {"dp_I", "dp_U", "dp_V", "dp_x", "dp_y", "dp_masks"}


def annotation_kind(value: Any) -> Optional[str]:
    """
    Figures out the annotation variant.

    Raw dicts are discriminated by the keys present in them, models by their ``kind``.
    """
    if not isinstance(value, dict):
        return getattr(value, "kind", None)
    if "segments_info" in value:
        return PanopticSegmentationAnnotation.kind
    if "caption" in value:
        return ImageCaptioningAnnotation.kind
    if _dense_pose_keys.intersection(value.keys()):
        return DensePoseAnnotation.kind
    if "keypoints" in value:
        return KeypointDetectionAnnotation.kind
    return ObjectDetectionAnnotation.kind


CocoAnnotation = Annotated[
    Union[
        Annotated[ObjectDetectionAnnotation, Tag(ObjectDetectionAnnotation.kind)],
        Annotated[KeypointDetectionAnnotation, Tag(KeypointDetectionAnnotation.kind)],
        Annotated[PanopticSegmentationAnnotation, Tag(PanopticSegmentationAnnotation.kind)],
        Annotated[ImageCaptioningAnnotation, Tag(ImageCaptioningAnnotation.kind)],
        Annotated[DensePoseAnnotation, Tag(DensePoseAnnotation.kind)],
    ],
    Discriminator(annotation_kind),
]

annotation_types = (
    ObjectDetectionAnnotation,
    KeypointDetectionAnnotation,
    PanopticSegmentationAnnotation,
    ImageCaptioningAnnotation,
    DensePoseAnnotation,
)
