import pytest

from cococrawl.converters.merge import merge_documents, merge_files
from cococrawl.errors import LoadError, MergeError, StructuralError
from cococrawl.formats.coco import ClashPolicy, CocoDocument, MergeContext
from cococrawl.identity import build_id_map, validate_references

REASSIGN = MergeContext(policy=ClashPolicy.REASSIGN)


def _document(images, categories=None, annotations=None, licenses=None) -> CocoDocument:
    content = {
        "images": [
            {"id": image_id, "width": 10, "height": 10, "file_name": f"{image_id}.jpg"} for image_id in images
        ],
        "annotations": annotations or [],
    }
    if categories is not None:
        content["categories"] = categories
    if licenses is not None:
        content["licenses"] = licenses
    return CocoDocument.model_validate(content)


def _assert_unique_and_resolved(document: CocoDocument):
    build_id_map(document.images, strict=True, kind="image")
    build_id_map(document.categories, strict=True, kind="category")
    build_id_map(document.licenses, strict=True, kind="license")
    annotation_ids = []
    for annotation in document.annotations:
        if hasattr(annotation, "segments_info"):
            annotation_ids.extend(segment.id for segment in annotation.segments_info)
        else:
            annotation_ids.append(annotation.id)
    assert len(annotation_ids) == len(set(annotation_ids))
    validate_references(document)
    license_ids = {lic.id for lic in document.licenses}
    assert all(img.license in license_ids for img in document.images if img.license is not None)


def test_colliding_image_is_dropped_but_categories_unify():
    first = _document([1], categories=[{"id": 5, "name": "x"}])
    second = _document([1], categories=[{"id": 9, "name": "x"}])

    merged = merge_documents([first, second])

    assert [img.id for img in merged.images] == [1]
    assert merged.images[0].file_name == "1.jpg"
    assert [(cat.id, cat.name) for cat in merged.categories] == [(5, "x")]


def test_dropped_image_takes_its_annotations_along():
    first = _document([1], categories=[{"id": 1, "name": "cat"}])
    second = _document(
        [1, 2],
        categories=[{"id": 1, "name": "cat"}],
        annotations=[
            {"id": 10, "image_id": 1, "category_id": 1},
            {"id": 11, "image_id": 2, "category_id": 1},
        ],
    )

    merged = merge_documents([first, second])

    assert [img.id for img in merged.images] == [1, 2]
    assert [(ann.id, ann.image_id) for ann in merged.annotations] == [(11, 2)]


def test_same_category_under_different_ids():
    cat = {"name": "cat", "supercategory": "animal"}
    first = _document(
        [1], categories=[{"id": 1, **cat}], annotations=[{"id": 1, "image_id": 1, "category_id": 1}]
    )
    second = _document(
        [2],
        categories=[{"id": 3, "name": "dog", "supercategory": "animal"}, {"id": 7, **cat}],
        annotations=[
            {"id": 2, "image_id": 2, "category_id": 7},
            {"id": 3, "image_id": 2, "category_id": 3},
        ],
    )

    merged = merge_documents([first, second])

    cats = [c for c in merged.categories if c.name == "cat"]
    assert len(cats) == 1
    assert [c.id for c in merged.categories] == [1, 3]
    assert [ann.category_id for ann in merged.annotations] == [1, 1, 3]


def test_distinct_categories_with_clashing_ids():
    first = _document(
        [1], categories=[{"id": 1, "name": "cat"}], annotations=[{"id": 1, "image_id": 1, "category_id": 1}]
    )
    second = _document(
        [2], categories=[{"id": 1, "name": "dog"}], annotations=[{"id": 1, "image_id": 2, "category_id": 1}]
    )

    merged = merge_documents([first, second])

    assert [(c.id, c.name) for c in merged.categories] == [(1, "cat"), (2, "dog")]
    assert [(ann.id, ann.image_id, ann.category_id) for ann in merged.annotations] == [(1, 1, 1), (2, 2, 2)]
    _assert_unique_and_resolved(merged)


def test_reassign_keeps_everything(detection_document):
    merged = merge_documents([detection_document, detection_document], REASSIGN)

    assert [img.id for img in merged.images] == [10, 11, 12, 13, 14, 15, 16, 17]
    assert [ann.id for ann in merged.annotations] == list(range(100, 108))
    assert [ann.image_id for ann in merged.annotations] == [10, 10, 11, 13, 14, 14, 15, 17]
    assert len(merged.categories) == 2
    assert len(merged.licenses) == 1
    assert merged.images[4].license == 1
    _assert_unique_and_resolved(merged)


def test_reassign_gives_new_ids_to_later_files():
    first = _document([1], categories=[{"id": 1, "name": "cat"}])
    second = _document(
        [100], categories=[{"id": 50, "name": "dog"}], annotations=[{"id": 70, "image_id": 100, "category_id": 50}]
    )

    merged = merge_documents([first, second], REASSIGN)

    assert [img.id for img in merged.images] == [1, 2]
    assert [(c.id, c.name) for c in merged.categories] == [(1, "cat"), (2, "dog")]
    assert [(ann.id, ann.image_id, ann.category_id) for ann in merged.annotations] == [(0, 2, 2)]


def test_ignore_merges_only_the_first_copy(detection_document):
    merged = merge_documents([detection_document, detection_document])

    assert [img.id for img in merged.images] == [10, 11, 12, 13]
    assert [ann.id for ann in merged.annotations] == [100, 101, 102, 103]
    _assert_unique_and_resolved(merged)


def test_licenses_are_deduplicated_and_remapped():
    first = _document([1], licenses=[{"id": 1, "name": "MIT"}])
    first.images[0].license = 1
    second = _document([2], licenses=[{"id": 1, "name": "Apache-2.0"}, {"id": 2, "name": "MIT"}])
    second.images[0].license = 1

    merged = merge_documents([first, second])

    assert [(lic.id, lic.name) for lic in merged.licenses] == [(1, "MIT"), (2, "Apache-2.0")]
    assert [img.license for img in merged.images] == [1, 2]


def test_panoptic_segments_share_annotation_ids(mixed_document):
    other = _document(
        [50],
        categories=[{"id": 8, "name": "cat", "supercategory": "animal"}],
        annotations=[{"id": 4, "image_id": 50, "category_id": 8}],
    )

    merged = merge_documents([mixed_document, other])

    panoptic = merged.annotations[3]
    assert [segment.id for segment in panoptic.segments_info] == [4, 5]
    assert merged.annotations[-1].id == 8
    assert merged.annotations[-1].category_id == 1
    _assert_unique_and_resolved(merged)


def test_inputs_are_not_modified(detection_document):
    before = detection_document.model_copy(deep=True)
    merge_documents([detection_document, detection_document], REASSIGN)
    assert detection_document == before


def test_merged_info(detection_document):
    merged = merge_documents([detection_document], MergeContext(version="3.0"))
    assert merged.info.version == "3.0"
    assert merged.info.date_created is not None


def test_nothing_to_merge():
    with pytest.raises(MergeError):
        merge_documents([])


def test_dangling_reference():
    broken = _document([1], categories=[], annotations=[{"id": 1, "image_id": 1, "category_id": 3}])
    with pytest.raises(StructuralError):
        merge_documents([broken])


def test_merge_files_rebases_image_paths(tmp_path, write_manifest):
    first = write_manifest(
        tmp_path / "a" / "a.json",
        {"images": [{"id": 1, "width": 1, "height": 1, "file_name": "images/x.jpg"}], "annotations": []},
    )
    second = write_manifest(
        tmp_path / "b" / "nested" / "b.json",
        {"images": [{"id": 2, "width": 1, "height": 1, "file_name": "../y.jpg"}], "annotations": []},
    )
    output = tmp_path / "merged.json"

    merged = merge_files([first, second], output)

    assert [img.file_name for img in merged.images] == ["a/images/x.jpg", "b/y.jpg"]
    assert CocoDocument.load(output) == merged


def test_merge_files_outside_output_dir(tmp_path, write_manifest):
    first = write_manifest(
        tmp_path / "a" / "a.json",
        {"images": [{"id": 1, "width": 1, "height": 1, "file_name": "x.jpg"}], "annotations": []},
    )
    merged = merge_files([first], tmp_path / "out" / "merged.json")
    assert merged.images[0].file_name == str((tmp_path / "a" / "x.jpg").resolve())


def test_merge_files_missing_input(tmp_path, write_manifest):
    first = write_manifest(tmp_path / "a.json", {"images": [], "annotations": []})
    output = tmp_path / "merged.json"

    with pytest.raises(LoadError):
        merge_files([first, tmp_path / "missing.json"], output)
    assert not output.exists()


def test_merge_files_nothing_to_merge(tmp_path):
    with pytest.raises(MergeError):
        merge_files([], tmp_path / "merged.json")


def test_unknown_license_reference_is_dropped():
    first = _document([1], licenses=[{"id": 1, "name": "MIT"}])
    first.images[0].license = 1
    second = _document([2])
    second.images[0].license = 1

    merged = merge_documents([first, second])

    assert [img.license for img in merged.images] == [1, None]
    assert [(lic.id, lic.name) for lic in merged.licenses] == [(1, "MIT")]


def test_unknown_license_reference_is_dropped_with_reassign():
    first = _document([1], licenses=[{"id": 1, "name": "MIT"}])
    second = _document([2], licenses=[{"id": 5, "name": "Apache-2.0"}])
    second.images[0].license = 2

    merged = merge_documents([first, second], REASSIGN)

    assert [(lic.id, lic.name) for lic in merged.licenses] == [(1, "MIT"), (2, "Apache-2.0")]
    assert merged.images[1].license is None
    assert "license" not in merged.images[1].model_dump(exclude_none=True)
