from .path import (
    create_coco_image_path,
    get_extension,
    is_image,
    is_in_directory_tree,
    rebase_image_path,
    resolve_image_path,
)
from .parallel import Observer, gather, scatter

__all__ = [
    "Observer",
    "create_coco_image_path",
    "gather",
    "get_extension",
    "is_image",
    "is_in_directory_tree",
    "rebase_image_path",
    "resolve_image_path",
    "scatter",
]
