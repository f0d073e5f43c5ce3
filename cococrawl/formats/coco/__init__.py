from cococrawl.formats.coco.annotations import (
    CocoAnnotation,
    CocoRLE,
    CocoSegmentation,
    DensePoseAnnotation,
    ImageCaptioningAnnotation,
    KeypointDetectionAnnotation,
    ObjectDetectionAnnotation,
    PanopticSegmentInfo,
    PanopticSegmentationAnnotation,
    annotation_kind,
    annotation_types,
)
from cococrawl.formats.coco.categories import (
    CocoCategory,
    CocoLicense,
    KeypointDetectionCategory,
    ObjectDetectionCategory,
    PanopticSegmentationCategory,
    category_kind,
    category_types,
)
from cococrawl.formats.coco.context import ClashPolicy, CopyContext, CrawlContext, MergeContext, SplitContext
from cococrawl.formats.coco.document import CocoDocument, CocoImage, CocoInfo, format_timestamp

__all__ = [
    "CocoAnnotation",
    "CocoCategory",
    "CocoDocument",
    "CocoImage",
    "CocoInfo",
    "CocoLicense",
    "CocoRLE",
    "CocoSegmentation",
    "ClashPolicy",
    "CopyContext",
    "CrawlContext",
    "DensePoseAnnotation",
    "ImageCaptioningAnnotation",
    "KeypointDetectionAnnotation",
    "KeypointDetectionCategory",
    "MergeContext",
    "ObjectDetectionAnnotation",
    "ObjectDetectionCategory",
    "PanopticSegmentInfo",
    "PanopticSegmentationAnnotation",
    "PanopticSegmentationCategory",
    "SplitContext",
    "annotation_kind",
    "annotation_types",
    "category_kind",
    "category_types",
    "format_timestamp",
]
