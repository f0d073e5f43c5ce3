from typing import Dict, List

from pydantic import BaseModel

from cococrawl.formats.coco import CocoDocument, annotation_types, category_types

KIND_LABELS: Dict[str, str] = {
    "object_detection": "Object Detection",
    "keypoint_detection": "Keypoint Detection",
    "panoptic_segmentation": "Panoptic Segmentation",
    "image_captioning": "Image Captioning",
    "dense_pose": "DensePose",
}


class DocumentCounts(BaseModel):
    images: int
    annotations: int
    annotations_by_kind: Dict[str, int]
    categories: int
    categories_by_kind: Dict[str, int]

    def report_lines(self) -> List[str]:
        lines = [f"Images: {self.images}", f"Annotations: {self.annotations}"]
        for kind, count in self.annotations_by_kind.items():
            lines.append(f"  {KIND_LABELS[kind]} Annotations: {count}")
        lines.append(f"Categories: {self.categories}")
        for kind, count in self.categories_by_kind.items():
            lines.append(f"  {KIND_LABELS[kind]} Categories: {count}")
        return lines


def count_document(document: CocoDocument) -> DocumentCounts:
    """Sizes of the document, with annotations and categories broken down by variant"""
    annotations_by_kind = {t.kind: 0 for t in annotation_types}
    for annotation in document.annotations:
        annotations_by_kind[annotation.kind] += 1

    categories = document.categories or []
    categories_by_kind = {t.kind: 0 for t in category_types}
    for category in categories:
        categories_by_kind[category.kind] += 1

    return DocumentCounts(
        images=len(document.images),
        annotations=len(document.annotations),
        annotations_by_kind=annotations_by_kind,
        categories=len(categories),
        categories_by_kind=categories_by_kind,
    )
